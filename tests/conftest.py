import json

import pytest


def entitlement_payload(models=(), data=(), apps=()) -> str:
    return json.dumps(
        {
            "properties": {
                "tenantName": "acme",
                "provisioningDetail": {
                    "entitlements": {
                        "modelEntitlements": list(models),
                        "dataEntitlements": list(data),
                        "appEntitlements": list(apps),
                    }
                },
            }
        }
    )


@pytest.fixture
def record_rows() -> list[dict]:
    return [
        {
            "Id": "a0X1",
            "Name": "PS-0001",
            "Account__c": "acct-1",
            "Deployment__c": "dep-1",
            "CreatedDate": "2024-01-10T09:00:00.000+0000",
            "Payload_Data__c": entitlement_payload(
                models=[{"productCode": "M1", "startDate": "2024-01-01", "endDate": "2024-06-01"}],
                apps=[{"productCode": "APP-1", "quantity": 1, "packageName": "pkg"}],
            ),
        },
        {
            "Id": "a0X2",
            "Name": "PS-0002",
            "Account__c": "acct-1",
            "Deployment__c": "dep-1",
            "CreatedDate": "2024-03-10T09:00:00.000+0000",
            "Payload_Data__c": entitlement_payload(
                models=[{"productCode": "M1", "startDate": "2024-06-01", "endDate": "2025-06-01"}],
                apps=[{"productCode": "APP-1", "quantity": 3, "packageName": "pkg"}],
            ),
        },
        {
            "Id": "a0X3",
            "Name": "PS-0003",
            "Account__c": "acct-2",
            "Deployment__c": "dep-2",
            "CreatedDate": "2024-02-01T09:00:00.000+0000",
            "Payload_Data__c": entitlement_payload(
                data=[
                    {"productCode": "D1", "startDate": "2024-01-01", "endDate": "2024-05-31"},
                    {"productCode": "D2", "startDate": "2024-03-01", "endDate": "2024-09-01"},
                ],
            ),
        },
    ]
