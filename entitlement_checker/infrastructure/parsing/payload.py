"""Provisioning payload parser producing canonical entitlement snapshots.

Payloads have drifted across several historical shapes. Every logical field is
resolved through an ordered list of accessors; the first non-empty value wins.
Extraction never raises: unreadable payloads yield empty entitlement lists.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Sequence

from entitlement_checker.domain.models import (
    APP,
    DATA,
    MODEL,
    Entitlement,
    EntitlementSnapshot,
    ProvisioningRecord,
)
from entitlement_checker.infrastructure.parsing.utils import (
    Accessor,
    clean_text,
    first_list,
    first_present,
    parse_date,
    parse_datetime,
    parse_quantity,
    path,
    paths,
)

logger = logging.getLogger(__name__)

_ENTITLEMENT_ROOTS = ("properties.provisioningDetail.entitlements", "entitlements", "")

LIST_ACCESSORS: dict[str, list[Accessor]] = {}
for _category, _key in ((MODEL, "modelEntitlements"), (DATA, "dataEntitlements"), (APP, "appEntitlements")):
    LIST_ACCESSORS[_category] = paths(*(f"{root}.{_key}" if root else _key for root in _ENTITLEMENT_ROOTS))
# Oldest payloads listed models as productEntitlements at the root.
LIST_ACCESSORS[MODEL].append(path("productEntitlements"))

PRODUCT_CODE = paths("productCode", "product_code", "ProductCode", "code", "id")
PRODUCT_CODE_BY_CATEGORY = {
    MODEL: PRODUCT_CODE,
    DATA: PRODUCT_CODE + [path("name")],
    APP: PRODUCT_CODE + [path("name")],
}
START_DATE = paths("startDate", "start_date", "StartDate")
END_DATE = paths("endDate", "end_date", "EndDate")
QUANTITY = paths("quantity", "Quantity")
PRODUCT_MODIFIER = paths("productModifier", "ProductModifier", "product_modifier")
PACKAGE_NAME = paths("packageName", "package_name", "PackageName")
PRODUCT_NAME = paths("name", "productName", "product_name")

TENANT_NAME = paths(
    "properties.provisioningDetail.tenantName",
    "properties.tenantName",
    "preferredSubdomain1",
    "preferredSubdomain2",
    "properties.preferredSubdomain1",
    "properties.preferredSubdomain2",
    "tenantName",
)
REGION = paths("properties.provisioningDetail.region", "properties.region", "region")

RECORD_ID = paths("id", "Id")
RECORD_NAME = paths("name", "Name")
RECORD_ACCOUNT = paths("accountId", "account_id", "Account__c")
RECORD_DEPLOYMENT = paths("deploymentId", "deployment_id", "Deployment__c")
RECORD_CREATED = paths("createdDate", "created_date", "CreatedDate")
RECORD_PAYLOAD = paths("payloadJson", "payload_json", "payload", "Payload_Data__c")


def load_payload(raw: Any) -> Mapping[str, Any] | None:
    """Decode a payload into a mapping, or None when it cannot be read."""
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Payload is not valid UTF-8, treating as empty")
            return None
    if not isinstance(raw, str):
        logger.warning("Unsupported payload type %s, treating as empty", type(raw).__name__)
        return None
    if not raw.strip():
        return None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Malformed payload JSON (%s), treating as empty", exc)
        return None
    if not isinstance(payload, Mapping):
        logger.warning("Payload JSON is a %s, expected an object", type(payload).__name__)
        return None
    return payload


def _build_entitlement(category: str, item: Mapping[str, Any], position: int) -> Entitlement:
    is_app = category == APP
    return Entitlement(
        category=category,
        product_code=clean_text(first_present(item, PRODUCT_CODE_BY_CATEGORY[category])),
        start_date=parse_date(first_present(item, START_DATE)),
        end_date=parse_date(first_present(item, END_DATE)),
        quantity=parse_quantity(first_present(item, QUANTITY)) if is_app else None,
        product_modifier=clean_text(first_present(item, PRODUCT_MODIFIER)),
        package_name=clean_text(first_present(item, PACKAGE_NAME)) if is_app else None,
        product_name=clean_text(first_present(item, PRODUCT_NAME)),
        position=position,
    )


def _extract_category(payload: Mapping[str, Any], category: str) -> tuple[Entitlement, ...]:
    items: Sequence[Any] = first_list(payload, LIST_ACCESSORS[category])
    entitlements: list[Entitlement] = []
    for position, item in enumerate(items):
        if not isinstance(item, Mapping):
            logger.debug("Skipping non-object %s entitlement at position %d", category, position)
            continue
        entitlements.append(_build_entitlement(category, item, position))
    return tuple(entitlements)


def extract_entitlements(
    raw_payload: Any,
) -> tuple[tuple[Entitlement, ...], tuple[Entitlement, ...], tuple[Entitlement, ...]]:
    """Return (models, data, apps) for a payload; empty on any parse failure."""
    payload = load_payload(raw_payload)
    if payload is None:
        return (), (), ()
    return (
        _extract_category(payload, MODEL),
        _extract_category(payload, DATA),
        _extract_category(payload, APP),
    )


def extract_snapshot(record: ProvisioningRecord) -> EntitlementSnapshot:
    payload = load_payload(record.payload_json)
    if payload is None:
        if record.payload_json is not None:
            logger.warning("Record %s has an unreadable payload; no entitlements extracted", record.id)
        models, data, apps = (), (), ()
        tenant_name = region = None
    else:
        models = _extract_category(payload, MODEL)
        data = _extract_category(payload, DATA)
        apps = _extract_category(payload, APP)
        tenant_name = clean_text(first_present(payload, TENANT_NAME))
        region = clean_text(first_present(payload, REGION))
    return EntitlementSnapshot(
        record_id=record.id,
        record_name=record.name,
        account_id=record.account_id,
        deployment_id=record.deployment_id,
        created_date=parse_datetime(record.created_date),
        models=models,
        data=data,
        apps=apps,
        tenant_name=tenant_name,
        region=region,
    )


def record_from_mapping(raw: Mapping[str, Any]) -> ProvisioningRecord:
    """Build a record from either camelCase keys or upstream CRM field names."""
    return ProvisioningRecord(
        id=clean_text(first_present(raw, RECORD_ID)) or "",
        name=clean_text(first_present(raw, RECORD_NAME)),
        account_id=clean_text(first_present(raw, RECORD_ACCOUNT)),
        deployment_id=clean_text(first_present(raw, RECORD_DEPLOYMENT)),
        created_date=first_present(raw, RECORD_CREATED),
        payload_json=first_present(raw, RECORD_PAYLOAD),
    )
