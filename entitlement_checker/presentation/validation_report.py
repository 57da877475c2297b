"""Badge and tooltip text for validation results."""
from __future__ import annotations

from typing import Mapping, Sequence

from entitlement_checker.domain.results import ValidationResult

ALL_PASSED = "All validation rules passed"


def validation_tooltip(result: ValidationResult | None) -> str:
    if result is None or result.passed:
        return ALL_PASSED
    lines = [f"{rule.rule_name or rule.rule_id}: {rule.message or 'Failed'}" for rule in result.failed_rules()]
    return "\n".join(lines) or "Validation failed"


def results_to_rows(results: Mapping[str, ValidationResult]) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for record_id, result in results.items():
        failed: Sequence[str] = [rule.rule_id for rule in result.failed_rules()]
        rows.append(
            {
                "record_id": record_id,
                "record_name": result.record_name or "",
                "status": result.overall_status,
                "failed_rules": ", ".join(failed),
                "errored_rules": ", ".join(rule.rule_id for rule in result.errored_rules()),
                "tooltip": validation_tooltip(result),
            }
        )
    return rows
