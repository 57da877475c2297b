"""Summary cards and table data for expiration monitoring."""
from __future__ import annotations

import pandas as pd

from entitlement_checker.domain.results import ExpirationReport

EXPIRATION_COLUMNS = [
    "account_id",
    "deployment_id",
    "record_id",
    "record_name",
    "category",
    "product_code",
    "product_name",
    "end_date",
    "days_until_expiry",
    "status",
    "extending_record_id",
    "extending_record_name",
    "extending_end_date",
]


def expiration_summary_dict(report: ExpirationReport) -> dict[str, int]:
    summary = report.summary
    return {
        "totalExpiring": summary.total_expiring,
        "atRisk": summary.at_risk,
        "extended": summary.extended,
        "accountsAffected": summary.accounts_affected,
    }


def expirations_to_frame(report: ExpirationReport, include_extended: bool = True) -> pd.DataFrame:
    records = report.expirations if include_extended else report.at_risk()
    return pd.DataFrame(
        [
            {
                "account_id": r.account_id,
                "deployment_id": r.deployment_id,
                "record_id": r.record_id,
                "record_name": r.record_name,
                "category": r.category,
                "product_code": r.product_code,
                "product_name": r.product_name,
                "end_date": r.end_date,
                "days_until_expiry": r.days_until_expiry,
                "status": r.status,
                "extending_record_id": r.extending_record_id,
                "extending_record_name": r.extending_record_name,
                "extending_end_date": r.extending_end_date,
            }
            for r in records
        ],
        columns=EXPIRATION_COLUMNS,
    )


def accounts_frame(report: ExpirationReport) -> pd.DataFrame:
    """Per-account roll-up of the expiring products."""
    frame = expirations_to_frame(report)
    if frame.empty:
        return pd.DataFrame(columns=["account_id", "expiring", "at_risk", "earliest_expiration"])
    frame["account_id"] = frame["account_id"].fillna(frame["deployment_id"]).fillna(frame["record_id"])
    frame["is_at_risk"] = frame["status"] == "at-risk"
    grouped = frame.groupby("account_id", sort=True).agg(
        expiring=("product_code", "size"),
        at_risk=("is_at_risk", "sum"),
        earliest_expiration=("end_date", "min"),
    )
    return grouped.reset_index()
