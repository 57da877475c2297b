"""Domain services implementing rule evaluation."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Sequence

from .models import EntitlementSnapshot
from .results import FAIL, PASS, RuleResult, ValidationResult
from .rules import ValidationRule, default_rules

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RuleEngine:
    """Runs the enabled subset of a fixed rule registry against one snapshot.

    Rules run in registry order regardless of how the enabled ids are ordered.
    Evaluation is fail-open: a rule that raises is recorded as a flagged PASS
    and the remaining rules still run. Unknown rule ids are ignored.
    """

    def __init__(self, rules: Sequence[ValidationRule] | None = None, clock: Clock | None = None) -> None:
        if rules is None:
            rules = default_rules()
        seen: set[str] = set()
        for rule in rules:
            if rule.rule_id in seen:
                raise ValueError(f"Duplicate rule id in registry: {rule.rule_id}")
            seen.add(rule.rule_id)
        self._rules = tuple(rules)
        self._clock = clock or _utcnow

    @property
    def rule_ids(self) -> tuple[str, ...]:
        return tuple(rule.rule_id for rule in self._rules)

    def rule_names(self) -> dict[str, str]:
        return {rule.rule_id: rule.name for rule in self._rules}

    def evaluate(self, snapshot: EntitlementSnapshot, enabled_rule_ids: Iterable[str]) -> ValidationResult:
        enabled = set(enabled_rule_ids)
        unknown = enabled.difference(self.rule_ids)
        if unknown:
            logger.debug("Ignoring unknown rule ids %s for record %s", sorted(unknown), snapshot.record_id)

        results: list[RuleResult] = []
        for rule in self._rules:
            if rule.rule_id not in enabled:
                continue
            result = self._run_rule(rule, snapshot)
            if result.failed:
                logger.info("Rule %s failed for record %s: %s", rule.rule_id, snapshot.record_id, result.message)
            results.append(result)

        overall = FAIL if any(result.failed for result in results) else PASS
        return ValidationResult(
            record_id=snapshot.record_id,
            overall_status=overall,
            rule_results=tuple(results),
            validated_at=self._clock(),
            record_name=snapshot.record_name,
        )

    @staticmethod
    def _run_rule(rule: ValidationRule, snapshot: EntitlementSnapshot) -> RuleResult:
        try:
            return rule.evaluate(snapshot)
        except Exception as exc:
            logger.exception("Error executing rule %s for record %s", rule.rule_id, snapshot.record_id)
            return RuleResult(
                rule_id=rule.rule_id,
                status=PASS,
                message="Validation error, defaulting to pass",
                details={"error": str(exc)},
                rule_name=rule.name,
                errored=True,
            )
