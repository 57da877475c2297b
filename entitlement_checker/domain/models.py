"""Domain models for entitlement validation.

These dataclasses capture the canonical shape of entitlements once they have
been extracted from a provisioning request payload. Instances are immutable;
a snapshot lives exactly as long as the extraction that produced it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

MODEL = "model"
DATA = "data"
APP = "app"
CATEGORIES = (MODEL, DATA, APP)

UNKNOWN = "—"


@dataclass(frozen=True)
class Entitlement:
    """A single licensed product grant."""

    category: str
    product_code: str | None
    start_date: date | None = None
    end_date: date | None = None
    quantity: int | None = None
    product_modifier: str | None = None
    package_name: str | None = None
    product_name: str | None = None
    position: int = 0

    @property
    def index(self) -> int:
        """1-based position, as surfaced to end users."""
        return self.position + 1

    def display(self, field_name: str) -> str:
        value = getattr(self, field_name)
        if value is None or value == "":
            return UNKNOWN
        if isinstance(value, date):
            return value.isoformat()
        return str(value)


@dataclass(frozen=True)
class EntitlementSnapshot:
    """Entitlements captured by one provisioning request at its creation time."""

    record_id: str
    record_name: str | None = None
    account_id: str | None = None
    deployment_id: str | None = None
    created_date: datetime | None = None
    models: tuple[Entitlement, ...] = ()
    data: tuple[Entitlement, ...] = ()
    apps: tuple[Entitlement, ...] = ()
    tenant_name: str | None = None
    region: str | None = None

    def entitlements(self, category: str) -> tuple[Entitlement, ...]:
        if category == MODEL:
            return self.models
        if category == DATA:
            return self.data
        if category == APP:
            return self.apps
        raise ValueError(f"Unknown entitlement category: {category!r}")

    @property
    def total_count(self) -> int:
        return len(self.models) + len(self.data) + len(self.apps)


@dataclass(frozen=True)
class ProvisioningRecord:
    """Raw provisioning request as handed over by the retrieval layer."""

    id: str
    name: str | None = None
    account_id: str | None = None
    deployment_id: str | None = None
    created_date: Any = None
    payload_json: Any = field(default=None, repr=False)
