"""Validation results keyed by record id, replaced wholesale on every rebuild."""
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Mapping

from entitlement_checker.domain.models import EntitlementSnapshot
from entitlement_checker.domain.results import ValidationResult
from entitlement_checker.domain.services import RuleEngine

logger = logging.getLogger(__name__)


class ValidationCache:
    """Owned by the orchestration layer.

    Entries are never patched individually: ``rebuild`` computes a complete new
    mapping and swaps it in, so readers always see one consistent generation.
    """

    def __init__(self, engine: RuleEngine) -> None:
        self._engine = engine
        self._results: Mapping[str, ValidationResult] = MappingProxyType({})
        self._enabled_rule_ids: frozenset[str] | None = None

    @property
    def results(self) -> Mapping[str, ValidationResult]:
        return self._results

    @property
    def enabled_rule_ids(self) -> frozenset[str] | None:
        return self._enabled_rule_ids

    def needs_rebuild(self, enabled_rule_ids: Iterable[str]) -> bool:
        return self._enabled_rule_ids != frozenset(enabled_rule_ids)

    def rebuild(
        self, snapshots: Iterable[EntitlementSnapshot], enabled_rule_ids: Iterable[str]
    ) -> Mapping[str, ValidationResult]:
        enabled = frozenset(enabled_rule_ids)
        fresh = {snapshot.record_id: self._engine.evaluate(snapshot, enabled) for snapshot in snapshots}
        self._results = MappingProxyType(fresh)
        self._enabled_rule_ids = enabled
        failed = sum(1 for result in fresh.values() if not result.passed)
        logger.info("Validation cache rebuilt: %d records, %d failing", len(fresh), failed)
        return self._results

    def get(self, record_id: str) -> ValidationResult | None:
        return self._results.get(record_id)

    def __len__(self) -> int:
        return len(self._results)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._results
