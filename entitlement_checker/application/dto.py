"""Application-level DTOs for entitlement checks."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Sequence

from entitlement_checker.config import SETTINGS
from entitlement_checker.domain.models import EntitlementSnapshot
from entitlement_checker.domain.results import ExpirationReport, SnapshotDiff, ValidationResult


@dataclass(slots=True, frozen=True)
class ExpirationRequest:
    window_days: int = SETTINGS.expiration_window_days
    lookback_years: int | None = SETTINGS.lookback_years
    today: date | None = None
    exclude_removed: bool = False


@dataclass(slots=True, frozen=True)
class ValidationResponse:
    results: Mapping[str, ValidationResult]
    snapshots: Sequence[EntitlementSnapshot] = field(default_factory=tuple)

    @property
    def failing(self) -> tuple[ValidationResult, ...]:
        return tuple(result for result in self.results.values() if not result.passed)


@dataclass(slots=True, frozen=True)
class ComparisonResponse:
    previous: EntitlementSnapshot
    current: EntitlementSnapshot
    diff: SnapshotDiff


@dataclass(slots=True, frozen=True)
class ExpirationResponse:
    report: ExpirationReport
    snapshots: Sequence[EntitlementSnapshot] = field(default_factory=tuple)
