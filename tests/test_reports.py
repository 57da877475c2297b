from datetime import date

from entitlement_checker.domain.diff import diff_snapshots
from entitlement_checker.domain.models import DATA, UNKNOWN, Entitlement, EntitlementSnapshot
from entitlement_checker.domain.results import (
    FAIL,
    PASS,
    ExpirationRecord,
    ExpirationReport,
    ExpirationSummary,
    RuleResult,
    ValidationResult,
)
from entitlement_checker.presentation.diff_report import diff_counts, diff_to_rows, format_change
from entitlement_checker.presentation.expiration_report import (
    EXPIRATION_COLUMNS,
    accounts_frame,
    expiration_summary_dict,
    expirations_to_frame,
)
from entitlement_checker.presentation.validation_report import ALL_PASSED, results_to_rows, validation_tooltip


def make_report() -> ExpirationReport:
    records = (
        ExpirationRecord(product_code="P", end_date=date(2024, 5, 20), is_extended=False, category="model",
                         record_id="r1", account_id="acct-1", days_until_expiry=5),
        ExpirationRecord(product_code="Q", end_date=date(2024, 6, 1), is_extended=True, category="data",
                         record_id="r1", account_id="acct-1", days_until_expiry=17,
                         extending_record_id="r2", extending_end_date=date(2025, 6, 1)),
        ExpirationRecord(product_code="R", end_date=date(2024, 6, 5), is_extended=False, category="app",
                         record_id="r3", deployment_id="dep-3", days_until_expiry=21),
    )
    summary = ExpirationSummary(
        total_expiring=3, at_risk=2, extended=1, accounts_affected=2, snapshots_analyzed=3,
        entitlements_processed=9, removed_in_later_snapshot=0, window_days=30, analyzed_on=date(2024, 5, 15),
    )
    return ExpirationReport(summary=summary, expirations=records)


def test_tooltip_lists_failed_rules():
    result = ValidationResult(
        record_id="r1",
        overall_status=FAIL,
        rule_results=(
            RuleResult("a", FAIL, "2 of 3 app entitlements failed", rule_name="App Quantity Validation"),
            RuleResult("b", PASS, "ok", rule_name="Model Count Validation"),
        ),
    )

    assert validation_tooltip(result) == "App Quantity Validation: 2 of 3 app entitlements failed"
    assert validation_tooltip(None) == ALL_PASSED


def test_results_to_rows():
    results = {
        "r1": ValidationResult(record_id="r1", overall_status=PASS, record_name="PS-1",
                               rule_results=(RuleResult("x", PASS, "Validation error, defaulting to pass",
                                                        errored=True),)),
    }

    rows = results_to_rows(results)

    assert rows == [
        {
            "record_id": "r1",
            "record_name": "PS-1",
            "status": PASS,
            "failed_rules": "",
            "errored_rules": "x",
            "tooltip": ALL_PASSED,
        }
    ]


def test_diff_rows_show_previous_values_for_updates():
    previous = EntitlementSnapshot(
        record_id="r1", data=(Entitlement(category=DATA, product_code="D1", end_date=date(2024, 6, 1)),)
    )
    current = EntitlementSnapshot(
        record_id="r2", data=(Entitlement(category=DATA, product_code="D1", end_date=date(2024, 12, 1)),)
    )
    diff = diff_snapshots(previous, current)

    rows = diff_to_rows(diff)

    assert len(rows) == 1
    row = rows[0]
    assert row["status"] == "updated"
    assert row["end_date"] == "2024-12-01"
    assert row["previous_end_date"] == "2024-06-01"
    assert row["start_date"] == UNKNOWN
    assert row["changed_fields"] == "end_date"
    assert diff_counts(diff)["data"]["updated"] == 1
    assert format_change(diff.data.updated[0]) == ["end_date: 2024-06-01 -> 2024-12-01"]


def test_expiration_summary_and_frames():
    report = make_report()

    assert expiration_summary_dict(report) == {
        "totalExpiring": 3,
        "atRisk": 2,
        "extended": 1,
        "accountsAffected": 2,
    }

    frame = expirations_to_frame(report)
    assert list(frame.columns) == EXPIRATION_COLUMNS
    assert list(frame["status"]) == ["at-risk", "extended", "at-risk"]
    assert list(expirations_to_frame(report, include_extended=False)["product_code"]) == ["P", "R"]

    accounts = accounts_frame(report)
    assert list(accounts["account_id"]) == ["acct-1", "dep-3"]
    assert list(accounts["expiring"]) == [2, 1]
    assert list(accounts["at_risk"]) == [1, 1]


def test_empty_report_frames_keep_columns():
    summary = ExpirationSummary(0, 0, 0, 0, 0, 0, 0, 30, date(2024, 5, 15))
    report = ExpirationReport(summary=summary)

    assert expirations_to_frame(report).empty
    assert list(expirations_to_frame(report).columns) == EXPIRATION_COLUMNS
    assert accounts_frame(report).empty
