"""Shared parsing utilities for provisioning payloads."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, Mapping, Sequence

import pandas as pd

Accessor = Callable[[Mapping[str, Any]], Any]

# Quantities with more integer digits than this are treated as unparseable.
MAX_QUANTITY_DIGITS = 18


def path(*keys: str) -> Accessor:
    """Build an accessor that walks nested mappings, returning None on any miss."""

    def accessor(source: Mapping[str, Any]) -> Any:
        value: Any = source
        for key in keys:
            if not isinstance(value, Mapping):
                return None
            value = value.get(key)
        return value

    accessor.__name__ = ".".join(keys)
    return accessor


def paths(*dotted: str) -> list[Accessor]:
    return [path(*item.split(".")) for item in dotted]


def is_empty(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def first_present(source: Mapping[str, Any], accessors: Iterable[Accessor]) -> Any:
    """Return the first non-empty value produced by the accessors, in order."""
    for accessor in accessors:
        value = accessor(source)
        if not is_empty(value):
            return value
    return None


def first_list(source: Mapping[str, Any], accessors: Iterable[Accessor]) -> Sequence[Any]:
    for accessor in accessors:
        value = accessor(source)
        if isinstance(value, list) and value:
            return value
    return []


def clean_text(value: object) -> str | None:
    if is_empty(value) or isinstance(value, (Mapping, list)):
        return None
    return str(value).strip()


def parse_quantity(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    s = str(value).strip().replace(",", "")
    if not s:
        return None
    try:
        number = Decimal(s)
    except InvalidOperation:
        return None
    if not number.is_finite() or number.adjusted() > MAX_QUANTITY_DIGITS:
        return None
    if number != number.to_integral_value():
        return None
    return int(number)


def _to_timestamp(value: object, utc: bool) -> pd.Timestamp | None:
    if not isinstance(value, (str, date, datetime)):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        ts = pd.to_datetime(value, errors="coerce", utc=utc)
    except (TypeError, ValueError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return ts


def parse_date(value: object) -> date | None:
    """Coerce an entitlement date; anything unparseable becomes None."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    ts = _to_timestamp(value, utc=False)
    return ts.date() if ts is not None else None


def parse_datetime(value: object) -> datetime | None:
    """Coerce a record timestamp to an aware UTC datetime."""
    ts = _to_timestamp(value, utc=True)
    return ts.to_pydatetime() if ts is not None else None
