"""Row builders for entitlement comparison tables."""
from __future__ import annotations

from typing import Sequence

from entitlement_checker.domain.diff import COMPARE_FIELDS
from entitlement_checker.domain.models import UNKNOWN
from entitlement_checker.domain.results import DiffEntry, SnapshotDiff


def _value(entry: DiffEntry, side: str, field_name: str) -> str:
    entitlement = getattr(entry, side)
    if entitlement is None:
        return ""
    return entitlement.display(field_name)


def diff_to_rows(diff: SnapshotDiff) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for category, result in diff.by_category().items():
        fields: Sequence[str] = COMPARE_FIELDS[category]
        for status, entry in result.iter_entries():
            side = "previous" if status == "removed" else "current"
            row = {"category": category, "status": status, "key": entry.key}
            for field_name in fields:
                row[field_name] = _value(entry, side, field_name)
                if status == "updated":
                    row[f"previous_{field_name}"] = _value(entry, "previous", field_name)
            row["changed_fields"] = ", ".join(entry.changed_fields)
            rows.append(row)
    return rows


def diff_counts(diff: SnapshotDiff) -> dict[str, dict[str, int]]:
    return {category: result.counts() for category, result in diff.by_category().items()}


def format_change(entry: DiffEntry) -> list[str]:
    lines = []
    for change in entry.changes:
        before = UNKNOWN if change.previous is None else change.previous
        after = UNKNOWN if change.current is None else change.current
        lines.append(f"{change.field}: {before} -> {after}")
    return lines
