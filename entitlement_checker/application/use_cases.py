"""Application services orchestrating validation, comparison and expiration analysis."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from entitlement_checker.application.dto import (
    ComparisonResponse,
    ExpirationRequest,
    ExpirationResponse,
    ValidationResponse,
)
from entitlement_checker.application.validation_cache import ValidationCache
from entitlement_checker.config import SETTINGS
from entitlement_checker.domain.diff import diff_snapshots
from entitlement_checker.domain.expiration import ExpirationCorrelator
from entitlement_checker.domain.models import EntitlementSnapshot, ProvisioningRecord
from entitlement_checker.domain.repositories import ProvisioningRecordRepository
from entitlement_checker.domain.results import ValidationResult
from entitlement_checker.domain.services import RuleEngine
from entitlement_checker.infrastructure.parsing.payload import extract_snapshot

logger = logging.getLogger(__name__)


def load_snapshots(records: Iterable[ProvisioningRecord]) -> list[EntitlementSnapshot]:
    return [extract_snapshot(record) for record in records]


def validate_record(
    engine: RuleEngine, record: ProvisioningRecord, enabled_rule_ids: Iterable[str]
) -> ValidationResult:
    return engine.evaluate(extract_snapshot(record), enabled_rule_ids)


@dataclass(slots=True)
class EntitlementCheckContext:
    repository: ProvisioningRecordRepository
    engine: RuleEngine = field(default_factory=RuleEngine)


class ValidateRecordsUseCase:
    def __init__(self, context: EntitlementCheckContext, cache: ValidationCache | None = None) -> None:
        self._context = context
        self._cache = cache or ValidationCache(context.engine)

    @property
    def cache(self) -> ValidationCache:
        return self._cache

    def execute(self, enabled_rule_ids: Iterable[str] | None = None) -> ValidationResponse:
        if enabled_rule_ids is None:
            enabled_rule_ids = SETTINGS.default_enabled_rules
        snapshots = load_snapshots(self._context.repository.list_records())
        results = self._cache.rebuild(snapshots, enabled_rule_ids)
        return ValidationResponse(results=results, snapshots=tuple(snapshots))


class CompareSnapshotsUseCase:
    def __init__(self, context: EntitlementCheckContext, merge_ranges: bool = False) -> None:
        self._context = context
        self._merge_ranges = merge_ranges

    def execute(self, first_record_id: str, second_record_id: str) -> ComparisonResponse:
        by_id = {record.id: record for record in self._context.repository.list_records()}
        missing = [record_id for record_id in (first_record_id, second_record_id) if record_id not in by_id]
        if missing:
            raise KeyError(f"Unknown record id(s): {', '.join(missing)}")
        first = extract_snapshot(by_id[first_record_id])
        second = extract_snapshot(by_id[second_record_id])
        return self.compare(first, second)

    def compare(self, first: EntitlementSnapshot, second: EntitlementSnapshot) -> ComparisonResponse:
        previous, current = order_pair(first, second)
        if previous.deployment_id != current.deployment_id:
            logger.warning(
                "Comparing records %s and %s from different deployments (%s, %s)",
                previous.record_id,
                current.record_id,
                previous.deployment_id,
                current.deployment_id,
            )
        diff = diff_snapshots(previous, current, merge_ranges=self._merge_ranges)
        return ComparisonResponse(previous=previous, current=current, diff=diff)


def order_pair(
    first: EntitlementSnapshot, second: EntitlementSnapshot
) -> tuple[EntitlementSnapshot, EntitlementSnapshot]:
    """Return (previous, current); undated snapshots count as older."""
    if first.created_date is None:
        return first, second
    if second.created_date is None:
        return second, first
    if second.created_date < first.created_date:
        return second, first
    return first, second


class AnalyzeExpirationsUseCase:
    def __init__(self, context: EntitlementCheckContext) -> None:
        self._context = context

    def execute(self, request: ExpirationRequest | None = None) -> ExpirationResponse:
        request = request or ExpirationRequest()
        snapshots: Sequence[EntitlementSnapshot] = load_snapshots(self._context.repository.list_records())
        correlator = ExpirationCorrelator(
            window_days=request.window_days,
            lookback_years=request.lookback_years,
            exclude_removed=request.exclude_removed,
        )
        report = correlator.analyze(snapshots, today=request.today)
        return ExpirationResponse(report=report, snapshots=tuple(snapshots))
