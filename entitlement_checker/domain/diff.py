"""Attribute-level comparison of two entitlement snapshots.

Items are matched by an identity key and classified as added, removed, updated
or unchanged. The functions here are pure: no I/O and no shared state.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta
from typing import Any, Callable, Mapping, Sequence

from .models import APP, CATEGORIES, DATA, MODEL, Entitlement, EntitlementSnapshot
from .results import DiffEntry, DiffResult, FieldChange, SnapshotDiff

IdentityFn = Callable[[Entitlement], str]

DATED_FIELDS = ("start_date", "end_date", "product_modifier")
APP_FIELDS = ("package_name", "quantity", "start_date", "end_date", "product_modifier")
COMPARE_FIELDS: Mapping[str, tuple[str, ...]] = {
    MODEL: DATED_FIELDS,
    DATA: DATED_FIELDS,
    APP: APP_FIELDS,
}

_ABSENT = object()


def default_identity(entitlement: Entitlement) -> str:
    """Product code, or a positional key when the payload carried none."""
    if entitlement.product_code:
        return entitlement.product_code
    return f"#{entitlement.index}"


def composite_identity(entitlement: Entitlement) -> str:
    start = entitlement.start_date.isoformat() if entitlement.start_date else ""
    return f"{default_identity(entitlement)}|{start}"


def _normalize(value: Any) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        return _ABSENT
    return value


def _public(value: Any) -> Any:
    return None if value is _ABSENT else value


def _to_map(entitlements: Sequence[Entitlement], identity: IdentityFn) -> dict[str, Entitlement]:
    # Last write wins on identity collisions.
    return {identity(entitlement): entitlement for entitlement in entitlements}


def _fields_for(entitlements: Sequence[Entitlement]) -> tuple[str, ...]:
    for entitlement in entitlements:
        return COMPARE_FIELDS.get(entitlement.category, DATED_FIELDS)
    return DATED_FIELDS


def compare_fields(previous: Entitlement, current: Entitlement, fields: Sequence[str]) -> tuple[FieldChange, ...]:
    changes: list[FieldChange] = []
    for name in fields:
        before = _normalize(getattr(previous, name))
        after = _normalize(getattr(current, name))
        if before != after:
            changes.append(FieldChange(field=name, previous=_public(before), current=_public(after)))
    return tuple(changes)


def diff_entitlements(
    previous: Sequence[Entitlement],
    current: Sequence[Entitlement],
    identity: IdentityFn = default_identity,
    fields: Sequence[str] | None = None,
) -> DiffResult:
    if fields is None:
        fields = _fields_for(list(previous) + list(current))
    previous_map = _to_map(previous, identity)
    current_map = _to_map(current, identity)

    added: list[DiffEntry] = []
    removed: list[DiffEntry] = []
    updated: list[DiffEntry] = []
    unchanged: list[DiffEntry] = []

    for key, before in previous_map.items():
        after = current_map.get(key)
        if after is None:
            removed.append(DiffEntry(key=key, previous=before))
            continue
        changes = compare_fields(before, after, fields)
        if changes:
            updated.append(DiffEntry(key=key, previous=before, current=after, changes=changes))
        else:
            unchanged.append(DiffEntry(key=key, previous=before, current=after))

    for key, after in current_map.items():
        if key not in previous_map:
            added.append(DiffEntry(key=key, current=after))

    return DiffResult(
        added=tuple(added),
        removed=tuple(removed),
        updated=tuple(updated),
        unchanged=tuple(unchanged),
    )


def merge_consecutive_ranges(
    entitlements: Sequence[Entitlement], fields: Sequence[str] | None = None
) -> tuple[Entitlement, ...]:
    """Collapse back-to-back date ranges of otherwise identical entitlements.

    Items are grouped by product code plus every compared field other than the
    dates; within a group, a range starting the day after the previous one ends
    is folded into it.
    """
    if not entitlements:
        return ()
    if fields is None:
        fields = _fields_for(entitlements)
    grouping_fields = [name for name in fields if name not in ("start_date", "end_date")]

    groups: dict[tuple[Any, ...], list[Entitlement]] = {}
    for entitlement in entitlements:
        key = (default_identity(entitlement),) + tuple(
            _normalize(getattr(entitlement, name)) for name in grouping_fields
        )
        groups.setdefault(key, []).append(entitlement)

    merged: list[Entitlement] = []
    for items in groups.values():
        # Missing starts sort first, as the earliest possible range.
        ordered = sorted(
            items, key=lambda item: (item.start_date is not None, item.start_date or date.min, item.position)
        )
        current = ordered[0]
        for item in ordered[1:]:
            if (
                current.end_date is not None
                and item.start_date is not None
                and current.end_date + timedelta(days=1) == item.start_date
            ):
                current = replace(current, end_date=item.end_date)
            else:
                merged.append(current)
                current = item
        merged.append(current)

    merged.sort(key=lambda item: item.position)
    return tuple(merged)


def diff_snapshots(
    previous: EntitlementSnapshot,
    current: EntitlementSnapshot,
    identity: IdentityFn = default_identity,
    merge_ranges: bool = False,
) -> SnapshotDiff:
    results: dict[str, DiffResult] = {}
    for category in CATEGORIES:
        fields = COMPARE_FIELDS[category]
        before = previous.entitlements(category)
        after = current.entitlements(category)
        if merge_ranges:
            before = merge_consecutive_ranges(before, fields)
            after = merge_consecutive_ranges(after, fields)
        results[category] = diff_entitlements(before, after, identity=identity, fields=fields)
    return SnapshotDiff(
        previous_record_id=previous.record_id,
        current_record_id=current.record_id,
        models=results[MODEL],
        data=results[DATA],
        apps=results[APP],
    )
