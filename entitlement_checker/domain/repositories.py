"""Repository interfaces anchoring the domain layer."""
from __future__ import annotations

from typing import Protocol, Sequence

from .models import ProvisioningRecord


class ProvisioningRecordRepository(Protocol):
    """Provides provisioning requests already fetched from the upstream system."""

    def list_records(self) -> Sequence[ProvisioningRecord]:
        ...
