"""Entitlement validation, diffing and expiration-risk toolkit."""
from entitlement_checker.application.use_cases import (
    AnalyzeExpirationsUseCase,
    CompareSnapshotsUseCase,
    EntitlementCheckContext,
    ValidateRecordsUseCase,
)
from entitlement_checker.application.validation_cache import ValidationCache
from entitlement_checker.domain.diff import diff_entitlements, diff_snapshots
from entitlement_checker.domain.expiration import ExpirationCorrelator
from entitlement_checker.domain.services import RuleEngine
from entitlement_checker.infrastructure.parsing.payload import extract_entitlements, extract_snapshot
from entitlement_checker.infrastructure.repositories.json_repositories import (
    InMemoryRecordRepository,
    JsonFileRecordRepository,
)

__all__ = [
    "AnalyzeExpirationsUseCase",
    "CompareSnapshotsUseCase",
    "EntitlementCheckContext",
    "ValidateRecordsUseCase",
    "ValidationCache",
    "diff_entitlements",
    "diff_snapshots",
    "ExpirationCorrelator",
    "RuleEngine",
    "extract_entitlements",
    "extract_snapshot",
    "InMemoryRecordRepository",
    "JsonFileRecordRepository",
]
