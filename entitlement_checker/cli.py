"""Command-line entrypoint for entitlement checks over an exported record file."""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import date

from entitlement_checker.application.dto import ExpirationRequest
from entitlement_checker.application.use_cases import (
    AnalyzeExpirationsUseCase,
    CompareSnapshotsUseCase,
    EntitlementCheckContext,
    ValidateRecordsUseCase,
)
from entitlement_checker.config import SETTINGS
from entitlement_checker.infrastructure.repositories.json_repositories import JsonFileRecordRepository
from entitlement_checker.presentation.diff_report import format_change
from entitlement_checker.presentation.validation_report import validation_tooltip

logger = logging.getLogger(__name__)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate provisioning requests and report expiring entitlements")
    parser.add_argument("records", type=str, help="Path to a JSON export of provisioning requests")
    parser.add_argument(
        "--rules",
        type=str,
        default=",".join(SETTINGS.default_enabled_rules),
        help="Comma-separated rule ids to enable",
    )
    parser.add_argument("--window", type=int, default=SETTINGS.expiration_window_days, help="Expiration window in days")
    parser.add_argument("--lookback-years", type=int, default=SETTINGS.lookback_years, help="History horizon in years")
    parser.add_argument("--today", type=str, help="Override analysis date (YYYY-MM-DD)")
    parser.add_argument("--compare", nargs=2, metavar=("RECORD_A", "RECORD_B"), help="Diff two records")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    today = date.fromisoformat(args.today) if args.today else None
    enabled = [rule_id.strip() for rule_id in args.rules.split(",") if rule_id.strip()]

    context = EntitlementCheckContext(repository=JsonFileRecordRepository(args.records))
    try:
        validation = ValidateRecordsUseCase(context).execute(enabled)
    except (OSError, ValueError) as exc:
        logger.error("Could not read records from %s: %s", args.records, exc)
        print(f"Error: could not read records from {args.records}: {exc}", file=sys.stderr)
        return 1

    print("Validation Summary")
    print("==================")
    print(f"Records: {len(validation.results)}")
    print(f"Failing: {len(validation.failing)}")
    for result in validation.failing:
        print(f"- {result.record_name or result.record_id}:")
        for line in validation_tooltip(result).splitlines():
            print(f"    {line}")

    request = ExpirationRequest(window_days=args.window, lookback_years=args.lookback_years, today=today)
    report = AnalyzeExpirationsUseCase(context).execute(request).report
    summary = report.summary

    print("\nExpiration Summary")
    print("==================")
    print(f"Expiring within {summary.window_days} days: {summary.total_expiring}")
    print(f"At risk: {summary.at_risk}")
    print(f"Extended: {summary.extended}")
    print(f"Accounts affected: {summary.accounts_affected}")
    for record in report.at_risk():
        print(f"- {record.product_code} ({record.category}) ends {record.end_date.isoformat()} in {record.record_id}")

    if args.compare:
        try:
            comparison = CompareSnapshotsUseCase(context).execute(*args.compare)
        except KeyError as exc:
            print(f"Error: {exc.args[0]}", file=sys.stderr)
            return 1
        print(f"\nChanges from {comparison.previous.record_id} to {comparison.current.record_id}")
        print("==================")
        for category, result in comparison.diff.by_category().items():
            counts = result.counts()
            print(
                f"{category}: added {counts['added']}, removed {counts['removed']}, "
                f"updated {counts['updated']}, unchanged {counts['unchanged']}"
            )
            for entry in result.updated:
                for line in format_change(entry):
                    print(f"    {entry.key} {line}")

    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
