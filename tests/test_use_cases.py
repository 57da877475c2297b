from datetime import date, datetime, timezone

import pytest

from entitlement_checker.application.dto import ExpirationRequest
from entitlement_checker.application.use_cases import (
    AnalyzeExpirationsUseCase,
    CompareSnapshotsUseCase,
    EntitlementCheckContext,
    ValidateRecordsUseCase,
    validate_record,
)
from entitlement_checker.config import APP_QUANTITY_VALIDATION, DATE_OVERLAP_VALIDATION
from entitlement_checker.domain.models import ProvisioningRecord
from entitlement_checker.domain.results import FAIL, PASS
from entitlement_checker.domain.services import RuleEngine
from entitlement_checker.infrastructure.repositories.json_repositories import InMemoryRecordRepository

FIXED_NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


@pytest.fixture
def context(record_rows) -> EntitlementCheckContext:
    return EntitlementCheckContext(
        repository=InMemoryRecordRepository(record_rows),
        engine=RuleEngine(clock=lambda: FIXED_NOW),
    )


def test_validate_records_flags_failing_requests(context):
    response = ValidateRecordsUseCase(context).execute()

    statuses = {record_id: result.overall_status for record_id, result in response.results.items()}
    assert statuses == {"a0X1": PASS, "a0X2": FAIL, "a0X3": FAIL}
    assert [r.record_id for r in response.failing] == ["a0X2", "a0X3"]
    assert response.results["a0X2"].failed_rules()[0].rule_id == APP_QUANTITY_VALIDATION
    assert response.results["a0X3"].failed_rules()[0].rule_id == DATE_OVERLAP_VALIDATION


def test_validate_records_respects_enabled_rules(context):
    response = ValidateRecordsUseCase(context).execute([DATE_OVERLAP_VALIDATION])

    assert response.results["a0X2"].passed
    assert not response.results["a0X3"].passed


def test_validate_single_record(context):
    record = ProvisioningRecord(id="raw", payload_json="not json")

    result = validate_record(context.engine, record, [APP_QUANTITY_VALIDATION])

    assert result.record_id == "raw"
    assert result.passed
    assert result.validated_at == FIXED_NOW


def test_compare_orders_pair_by_creation_date(context):
    response = CompareSnapshotsUseCase(context).execute("a0X2", "a0X1")

    assert response.previous.record_id == "a0X1"
    assert response.current.record_id == "a0X2"
    model_change = response.diff.models.updated[0]
    assert model_change.key == "M1"
    assert model_change.changed_fields == ("start_date", "end_date")
    assert response.diff.apps.updated[0].changed_fields == ("quantity",)


def test_compare_unknown_record_raises(context):
    with pytest.raises(KeyError):
        CompareSnapshotsUseCase(context).execute("a0X1", "missing")


def test_compare_across_deployments_warns(context, caplog):
    CompareSnapshotsUseCase(context).execute("a0X1", "a0X3")

    assert "different deployments" in caplog.text


def test_analyze_expirations(context):
    request = ExpirationRequest(window_days=30, today=date(2024, 5, 15))

    report = AnalyzeExpirationsUseCase(context).execute(request).report

    by_code = {r.product_code: r for r in report.expirations}
    assert set(by_code) == {"M1", "D1"}
    assert by_code["M1"].is_extended
    assert by_code["M1"].extending_record_id == "a0X2"
    assert not by_code["D1"].is_extended
    assert report.summary.accounts_affected == 2
