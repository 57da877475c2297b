"""JSON-backed repositories for provisioning records."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from entitlement_checker.domain.models import ProvisioningRecord
from entitlement_checker.domain.repositories import ProvisioningRecordRepository
from entitlement_checker.infrastructure.parsing.payload import record_from_mapping


def _unwrap(document: Any) -> list[Any]:
    # Exports arrive either as a bare list or as a query result {"records": [...]}.
    if isinstance(document, Mapping):
        document = document.get("records", [])
    if not isinstance(document, list):
        raise ValueError("Expected a list of records or an object with a 'records' list")
    return document


class InMemoryRecordRepository(ProvisioningRecordRepository):
    def __init__(self, records: Iterable[ProvisioningRecord | Mapping[str, Any]]) -> None:
        self._records = tuple(
            record if isinstance(record, ProvisioningRecord) else record_from_mapping(record)
            for record in records
        )

    def list_records(self) -> Sequence[ProvisioningRecord]:
        return self._records


class JsonFileRecordRepository(ProvisioningRecordRepository):
    def __init__(self, source: Path | str) -> None:
        self._source = Path(source)

    def list_records(self) -> Sequence[ProvisioningRecord]:
        document = json.loads(self._source.read_text(encoding="utf-8"))
        return tuple(record_from_mapping(item) for item in _unwrap(document) if isinstance(item, Mapping))
