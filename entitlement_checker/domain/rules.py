"""Validation rules evaluated against a single entitlement snapshot.

Each rule is stateless and independent of every other rule. New rules plug in
by satisfying :class:`ValidationRule` and joining a registry; the engine needs
no changes.
"""
from __future__ import annotations

from datetime import date
from itertools import combinations
from typing import Any, Iterable, Protocol, Sequence

from entitlement_checker.config import (
    APP_PACKAGE_NAME_VALIDATION,
    APP_QUANTITY_VALIDATION,
    DATE_OVERLAP_VALIDATION,
    MODEL_COUNT_VALIDATION,
    SETTINGS,
)

from .models import CATEGORIES, Entitlement, EntitlementSnapshot
from .results import FAIL, PASS, RuleResult


class ValidationRule(Protocol):
    """Capability shared by every rule: an id, a label and an evaluation."""

    rule_id: str
    name: str

    def evaluate(self, snapshot: EntitlementSnapshot) -> RuleResult:
        ...


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _app_label(failure: dict[str, Any]) -> str:
    return failure["productCode"] or f"App-{failure['index']}"


class AppQuantityRule:
    """Every app must carry a quantity of exactly 1 unless its product is exempt."""

    rule_id = APP_QUANTITY_VALIDATION
    name = "App Quantity Validation"

    def __init__(self, exemptions: Iterable[str] | None = None) -> None:
        if exemptions is None:
            exemptions = SETTINGS.app_quantity_exemptions
        self._exemptions = frozenset(exemptions)

    def evaluate(self, snapshot: EntitlementSnapshot) -> RuleResult:
        failures: list[dict[str, Any]] = []
        for app in snapshot.apps:
            if app.quantity == 1 or app.product_code in self._exemptions:
                continue
            failures.append(
                {
                    "index": app.index,
                    "productCode": app.product_code,
                    "quantity": app.quantity,
                    "reason": "Invalid quantity",
                }
            )

        total = len(snapshot.apps)
        details = {
            "totalCount": total,
            "passCount": total - len(failures),
            "failCount": len(failures),
            "failures": failures,
        }
        if not failures:
            message = f"All {total} app entitlements valid" if total else "No app entitlements found"
            return RuleResult(self.rule_id, PASS, message, details, rule_name=self.name)
        described = "; ".join(
            f"{_app_label(failure)}: quantity {failure['quantity']}, expected 1" for failure in failures
        )
        message = f"{len(failures)} of {total} app entitlements failed: {described}"
        return RuleResult(self.rule_id, FAIL, message, details, rule_name=self.name)


class ModelCountRule:
    """Fails when a snapshot carries more models than the configured limit.

    The limit defaults to ``SETTINGS.model_count_limit``; ``unlimited=True``
    turns the rule into a pass-through.
    """

    rule_id = MODEL_COUNT_VALIDATION
    name = "Model Count Validation"

    def __init__(self, limit: int | None = None, unlimited: bool = False) -> None:
        if limit is None and not unlimited:
            limit = SETTINGS.model_count_limit
        if limit is not None and limit < 0:
            raise ValueError("Model count limit must be non-negative")
        self._limit = limit

    def evaluate(self, snapshot: EntitlementSnapshot) -> RuleResult:
        count = len(snapshot.models)
        if self._limit is None:
            return RuleResult(
                self.rule_id,
                PASS,
                "No model count limit configured",
                {"totalCount": count, "limit": None, "withinLimit": True},
                rule_name=self.name,
            )
        within_limit = count <= self._limit
        details = {"totalCount": count, "limit": self._limit, "withinLimit": within_limit}
        if within_limit:
            message = f"Model count {count} is within limit (<={self._limit})"
            return RuleResult(self.rule_id, PASS, message, details, rule_name=self.name)
        message = f"Model count {count} exceeds limit of {self._limit}"
        return RuleResult(self.rule_id, FAIL, message, details, rule_name=self.name)


def ranges_overlap(first: Entitlement, second: Entitlement) -> bool:
    """Closed-interval intersection; a missing date is unbounded at that edge."""
    if first.start_date is not None and second.end_date is not None and first.start_date > second.end_date:
        return False
    if second.start_date is not None and first.end_date is not None and second.start_date > first.end_date:
        return False
    return True


def _contains(outer: Entitlement, inner: Entitlement) -> bool:
    starts_before = outer.start_date is None or (
        inner.start_date is not None and outer.start_date <= inner.start_date
    )
    ends_after = outer.end_date is None or (inner.end_date is not None and outer.end_date >= inner.end_date)
    return starts_before and ends_after


def _label(entitlement: Entitlement) -> str:
    return f"{entitlement.category}-{entitlement.index}"


def _span(entitlement: Entitlement) -> str:
    return f"{entitlement.display('start_date')} to {entitlement.display('end_date')}"


def describe_overlap(first: Entitlement, second: Entitlement) -> str:
    if first.start_date == second.start_date and first.end_date == second.end_date:
        return f"{_label(first)} and {_label(second)} have identical date ranges ({_span(first)})"
    if _contains(first, second):
        return f"{_label(first)} ({_span(first)}) completely contains {_label(second)} ({_span(second)})"
    if _contains(second, first):
        return f"{_label(second)} ({_span(second)}) completely contains {_label(first)} ({_span(first)})"
    return f"{_label(first)} ({_span(first)}) overlaps with {_label(second)} ({_span(second)})"


class DateOverlapRule:
    """Within each category, no two entitlements may cover the same day.

    Pairs are compared once each (``i < j``), so a symmetric overlap is reported
    a single time.
    """

    rule_id = DATE_OVERLAP_VALIDATION
    name = "Entitlement Date Overlap Validation"

    def __init__(self, match_product_code: bool = False) -> None:
        self._match_product_code = match_product_code

    def _pairs(self, entitlements: Sequence[Entitlement]) -> Iterable[tuple[Entitlement, Entitlement]]:
        for first, second in combinations(entitlements, 2):
            if self._match_product_code and (
                first.product_code is None or first.product_code != second.product_code
            ):
                continue
            yield first, second

    def evaluate(self, snapshot: EntitlementSnapshot) -> RuleResult:
        overlaps: list[dict[str, Any]] = []
        for category in CATEGORIES:
            for first, second in self._pairs(snapshot.entitlements(category)):
                if not ranges_overlap(first, second):
                    continue
                overlaps.append(
                    {
                        "category": category,
                        "productCode": first.product_code
                        if first.product_code == second.product_code
                        else None,
                        "entitlement1": self._describe(first),
                        "entitlement2": self._describe(second),
                        "description": describe_overlap(first, second),
                    }
                )

        total = snapshot.total_count
        details = {"totalCount": total, "overlapsFound": len(overlaps), "overlaps": overlaps}
        if not overlaps:
            message = f"No date overlaps found across {total} entitlements" if total else "No entitlements found"
            return RuleResult(self.rule_id, PASS, message, details, rule_name=self.name)
        plural = "s" if len(overlaps) > 1 else ""
        return RuleResult(
            self.rule_id, FAIL, f"{len(overlaps)} date overlap{plural} found", details, rule_name=self.name
        )

    @staticmethod
    def _describe(entitlement: Entitlement) -> dict[str, Any]:
        return {
            "type": entitlement.category,
            "index": entitlement.index,
            "productCode": entitlement.product_code,
            "startDate": _iso(entitlement.start_date),
            "endDate": _iso(entitlement.end_date),
        }


class AppPackageNameRule:
    """Apps need a package name unless their product ships without one."""

    rule_id = APP_PACKAGE_NAME_VALIDATION
    name = "App Package Name Validation"

    def __init__(self, exemptions: Iterable[str] | None = None) -> None:
        if exemptions is None:
            exemptions = SETTINGS.package_name_exemptions
        self._exemptions = frozenset(exemptions)

    def evaluate(self, snapshot: EntitlementSnapshot) -> RuleResult:
        failures = [
            {"index": app.index, "productCode": app.product_code}
            for app in snapshot.apps
            if not app.package_name and app.product_code not in self._exemptions
        ]
        details = {"totalCount": len(snapshot.apps), "failCount": len(failures), "failures": failures}
        if not failures:
            message = "All app entitlements have a package name"
            return RuleResult(self.rule_id, PASS, message, details, rule_name=self.name)
        missing = ", ".join(_app_label(failure) for failure in failures)
        message = f"{len(failures)} app entitlements missing a package name: {missing}"
        return RuleResult(self.rule_id, FAIL, message, details, rule_name=self.name)


def default_rules() -> tuple[ValidationRule, ...]:
    """Registry in evaluation order."""
    return (AppQuantityRule(), ModelCountRule(), DateOverlapRule(), AppPackageNameRule())
