"""Central configuration for the entitlement checker package."""
from __future__ import annotations

from dataclasses import dataclass

APP_QUANTITY_VALIDATION = "app-quantity-validation"
MODEL_COUNT_VALIDATION = "model-count-validation"
DATE_OVERLAP_VALIDATION = "entitlement-date-overlap-validation"
APP_PACKAGE_NAME_VALIDATION = "app-package-name-validation"

# Apps that may legitimately carry a quantity other than 1.
APP_QUANTITY_EXEMPTIONS = {"IC-DATABRIDGE", "RI-RISKMODELER-EXPANSION"}

# Apps provisioned without a package.
PACKAGE_NAME_EXEMPTIONS = {
    "DATAAPI-LOCINTEL",
    "IC-RISKDATALAKE",
    "RI-COMETA",
    "DATAAPI-BULK-GEOCODE",
    "IC-DATABRIDGE",
}


@dataclass(slots=True, frozen=True)
class Settings:
    default_enabled_rules: tuple[str, ...]
    app_quantity_exemptions: frozenset[str]
    package_name_exemptions: frozenset[str]
    model_count_limit: int | None
    expiration_window_days: int
    lookback_years: int


SETTINGS = Settings(
    default_enabled_rules=(
        APP_QUANTITY_VALIDATION,
        MODEL_COUNT_VALIDATION,
        DATE_OVERLAP_VALIDATION,
    ),
    app_quantity_exemptions=frozenset(APP_QUANTITY_EXEMPTIONS),
    package_name_exemptions=frozenset(PACKAGE_NAME_EXEMPTIONS),
    model_count_limit=100,
    expiration_window_days=30,
    lookback_years=5,
)
