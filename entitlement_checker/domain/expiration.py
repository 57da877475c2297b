"""Expiration risk analysis across a deployment's provisioning history."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Sequence

from entitlement_checker.config import SETTINGS

from .models import CATEGORIES, Entitlement, EntitlementSnapshot
from .results import ExpirationRecord, ExpirationReport, ExpirationSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Candidate:
    snapshot: EntitlementSnapshot
    entitlement: Entitlement
    position: int


def years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # 29 February in a non-leap target year.
        return day.replace(year=day.year - years, day=28)


def _deployment_key(snapshot: EntitlementSnapshot) -> str:
    if snapshot.deployment_id:
        return snapshot.deployment_id
    return f"record:{snapshot.record_id}"


def _is_later(candidate: EntitlementSnapshot, source: EntitlementSnapshot) -> bool:
    if candidate.created_date is None:
        return False
    if source.created_date is None:
        return True
    return candidate.created_date > source.created_date


def _latest_by_product(entitlements: Iterable[Entitlement]) -> dict[str, Entitlement]:
    """One entitlement per product code: the line with the latest end date."""
    latest: dict[str, Entitlement] = {}
    for entitlement in entitlements:
        if not entitlement.product_code or entitlement.end_date is None:
            continue
        existing = latest.get(entitlement.product_code)
        if existing is None or entitlement.end_date > existing.end_date:
            latest[entitlement.product_code] = entitlement
    return latest


def find_extension(
    expiring: Entitlement, later_snapshots: Sequence[EntitlementSnapshot]
) -> tuple[EntitlementSnapshot, Entitlement] | None:
    """Earliest later snapshot whose entitlement continues coverage past the expiry."""
    cutoff = expiring.end_date + timedelta(days=1)
    for snapshot in later_snapshots:
        best: Entitlement | None = None
        for candidate in snapshot.entitlements(expiring.category):
            if candidate.product_code != expiring.product_code or candidate.end_date is None:
                continue
            if candidate.start_date is not None and candidate.start_date > cutoff:
                continue
            if candidate.end_date <= expiring.end_date:
                continue
            if best is None or candidate.end_date > best.end_date:
                best = candidate
        if best is not None:
            return snapshot, best
    return None


class ExpirationCorrelator:
    """Classifies entitlements expiring inside a window as extended or at-risk."""

    def __init__(
        self,
        window_days: int = SETTINGS.expiration_window_days,
        lookback_years: int | None = None,
        exclude_removed: bool = False,
    ) -> None:
        if window_days < 0:
            raise ValueError("Expiration window must be zero or more days")
        if lookback_years is not None and lookback_years < 0:
            raise ValueError("Lookback horizon must be zero or more years")
        self._window_days = window_days
        self._lookback_years = lookback_years
        self._exclude_removed = exclude_removed

    def analyze(self, snapshots: Sequence[EntitlementSnapshot], today: date | None = None) -> ExpirationReport:
        today = today or date.today()
        horizon = today + timedelta(days=self._window_days)
        selected = self._within_lookback(snapshots, today)

        expirations: list[ExpirationRecord] = []
        removed_count = 0
        processed = 0
        for history in self._by_deployment(selected):
            candidates: dict[tuple[str, str, date], _Candidate] = {}
            for position, snapshot in enumerate(history):
                for category in CATEGORIES:
                    entitlements = snapshot.entitlements(category)
                    processed += sum(1 for item in entitlements if item.product_code and item.end_date)
                    for code, entitlement in _latest_by_product(entitlements).items():
                        if today <= entitlement.end_date <= horizon:
                            # Later snapshots carrying the same expiry replace earlier ones.
                            candidates[(category, code, entitlement.end_date)] = _Candidate(
                                snapshot, entitlement, position
                            )

            for candidate in candidates.values():
                later = [item for item in history[candidate.position + 1 :] if _is_later(item, candidate.snapshot)]
                if self._exclude_removed and self._removed_later(candidate.entitlement, later):
                    removed_count += 1
                    continue
                expirations.append(self._build_record(candidate, later, today))

        expirations.sort(key=lambda item: (item.end_date, item.account_id or "", item.product_code, item.category))
        accounts = {item.account_id or item.deployment_id or item.record_id for item in expirations}
        extended = sum(1 for item in expirations if item.is_extended)
        summary = ExpirationSummary(
            total_expiring=len(expirations),
            at_risk=len(expirations) - extended,
            extended=extended,
            accounts_affected=len(accounts),
            snapshots_analyzed=len(selected),
            entitlements_processed=processed,
            removed_in_later_snapshot=removed_count,
            window_days=self._window_days,
            analyzed_on=today,
        )
        logger.info(
            "Expiration analysis complete: %d expiring, %d extended, %d filtered as removed",
            summary.total_expiring,
            summary.extended,
            removed_count,
        )
        return ExpirationReport(summary=summary, expirations=tuple(expirations))

    def _within_lookback(
        self, snapshots: Sequence[EntitlementSnapshot], today: date
    ) -> list[EntitlementSnapshot]:
        if self._lookback_years is None:
            return list(snapshots)
        cutoff = years_before(today, self._lookback_years)
        return [
            snapshot
            for snapshot in snapshots
            if snapshot.created_date is None or snapshot.created_date.date() >= cutoff
        ]

    @staticmethod
    def _by_deployment(snapshots: Sequence[EntitlementSnapshot]) -> list[list[EntitlementSnapshot]]:
        groups: dict[str, list[tuple[int, EntitlementSnapshot]]] = {}
        for order, snapshot in enumerate(snapshots):
            groups.setdefault(_deployment_key(snapshot), []).append((order, snapshot))
        histories = []
        for items in groups.values():
            # Undated snapshots sort first.
            items.sort(key=lambda pair: (pair[1].created_date is not None, pair[1].created_date or 0, pair[0]))
            histories.append([snapshot for _, snapshot in items])
        return histories

    @staticmethod
    def _removed_later(expiring: Entitlement, later: Sequence[EntitlementSnapshot]) -> bool:
        for snapshot in later:
            codes = {item.product_code for item in snapshot.entitlements(expiring.category)}
            if expiring.product_code not in codes:
                return True
        return False

    @staticmethod
    def _build_record(
        candidate: _Candidate, later: Sequence[EntitlementSnapshot], today: date
    ) -> ExpirationRecord:
        snapshot, entitlement = candidate.snapshot, candidate.entitlement
        extension = find_extension(entitlement, later)
        extending_snapshot, extending = extension if extension else (None, None)
        return ExpirationRecord(
            product_code=entitlement.product_code,
            end_date=entitlement.end_date,
            is_extended=extension is not None,
            category=entitlement.category,
            record_id=snapshot.record_id,
            record_name=snapshot.record_name,
            account_id=snapshot.account_id,
            deployment_id=snapshot.deployment_id,
            product_name=entitlement.product_name,
            days_until_expiry=(entitlement.end_date - today).days,
            extending_record_id=extending_snapshot.record_id if extending_snapshot else None,
            extending_record_name=extending_snapshot.record_name if extending_snapshot else None,
            extending_end_date=extending.end_date if extending else None,
        )
