"""Domain-level results for entitlement validation, diffing and expiration analysis."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Sequence

from .models import APP, DATA, MODEL, Entitlement

PASS = "PASS"
FAIL = "FAIL"


@dataclass(frozen=True)
class RuleResult:
    rule_id: str
    status: str
    message: str
    details: Mapping[str, Any] | None = None
    rule_name: str | None = None
    errored: bool = False

    @property
    def failed(self) -> bool:
        return self.status == FAIL


@dataclass(frozen=True)
class ValidationResult:
    record_id: str
    overall_status: str
    rule_results: Sequence[RuleResult] = field(default_factory=tuple)
    validated_at: datetime | None = None
    record_name: str | None = None

    @property
    def passed(self) -> bool:
        return self.overall_status == PASS

    def failed_rules(self) -> tuple[RuleResult, ...]:
        return tuple(result for result in self.rule_results if result.failed)

    def errored_rules(self) -> tuple[RuleResult, ...]:
        return tuple(result for result in self.rule_results if result.errored)


@dataclass(frozen=True)
class FieldChange:
    field: str
    previous: Any
    current: Any


@dataclass(frozen=True)
class DiffEntry:
    """One identity key and the entitlement(s) it resolved to on each side."""

    key: str
    previous: Entitlement | None = None
    current: Entitlement | None = None
    changes: Sequence[FieldChange] = field(default_factory=tuple)

    @property
    def changed_fields(self) -> tuple[str, ...]:
        return tuple(change.field for change in self.changes)


@dataclass(frozen=True)
class DiffResult:
    added: Sequence[DiffEntry] = field(default_factory=tuple)
    removed: Sequence[DiffEntry] = field(default_factory=tuple)
    updated: Sequence[DiffEntry] = field(default_factory=tuple)
    unchanged: Sequence[DiffEntry] = field(default_factory=tuple)

    def has_changes(self) -> bool:
        return any([self.added, self.removed, self.updated])

    def counts(self) -> dict[str, int]:
        return {
            "added": len(self.added),
            "removed": len(self.removed),
            "updated": len(self.updated),
            "unchanged": len(self.unchanged),
            "total": len(self.added) + len(self.removed) + len(self.updated) + len(self.unchanged),
        }

    def iter_entries(self) -> Iterable[tuple[str, DiffEntry]]:
        for status in ("added", "removed", "updated", "unchanged"):
            for entry in getattr(self, status):
                yield status, entry


@dataclass(frozen=True)
class SnapshotDiff:
    previous_record_id: str | None
    current_record_id: str | None
    models: DiffResult
    data: DiffResult
    apps: DiffResult

    def by_category(self) -> dict[str, DiffResult]:
        return {MODEL: self.models, DATA: self.data, APP: self.apps}

    def has_changes(self) -> bool:
        return any(result.has_changes() for result in self.by_category().values())


AT_RISK = "at-risk"
EXTENDED = "extended"


@dataclass(frozen=True)
class ExpirationRecord:
    product_code: str
    end_date: date
    is_extended: bool
    category: str
    record_id: str
    record_name: str | None = None
    account_id: str | None = None
    deployment_id: str | None = None
    product_name: str | None = None
    days_until_expiry: int = 0
    extending_record_id: str | None = None
    extending_record_name: str | None = None
    extending_end_date: date | None = None

    @property
    def status(self) -> str:
        return EXTENDED if self.is_extended else AT_RISK


@dataclass(frozen=True)
class ExpirationSummary:
    total_expiring: int
    at_risk: int
    extended: int
    accounts_affected: int
    snapshots_analyzed: int
    entitlements_processed: int
    removed_in_later_snapshot: int
    window_days: int
    analyzed_on: date


@dataclass(frozen=True)
class ExpirationReport:
    summary: ExpirationSummary
    expirations: Sequence[ExpirationRecord] = field(default_factory=tuple)

    def at_risk(self) -> tuple[ExpirationRecord, ...]:
        return tuple(record for record in self.expirations if not record.is_extended)

    def extended(self) -> tuple[ExpirationRecord, ...]:
        return tuple(record for record in self.expirations if record.is_extended)
