from datetime import datetime, timezone

import pytest

from entitlement_checker.application.validation_cache import ValidationCache
from entitlement_checker.config import APP_QUANTITY_VALIDATION, MODEL_COUNT_VALIDATION
from entitlement_checker.domain.models import APP, Entitlement, EntitlementSnapshot
from entitlement_checker.domain.services import RuleEngine


def make_snapshot(record_id: str, quantity: int) -> EntitlementSnapshot:
    return EntitlementSnapshot(
        record_id=record_id,
        apps=(Entitlement(category=APP, product_code="APP-1", quantity=quantity),),
    )


@pytest.fixture
def cache() -> ValidationCache:
    return ValidationCache(RuleEngine(clock=lambda: datetime(2024, 1, 1, tzinfo=timezone.utc)))


def test_rebuild_populates_results(cache):
    cache.rebuild([make_snapshot("r1", 1), make_snapshot("r2", 4)], [APP_QUANTITY_VALIDATION])

    assert len(cache) == 2
    assert "r1" in cache
    assert cache.get("r1").passed
    assert not cache.get("r2").passed
    assert cache.get("missing") is None


def test_rebuild_replaces_the_whole_mapping(cache):
    cache.rebuild([make_snapshot("r1", 1), make_snapshot("r2", 4)], [APP_QUANTITY_VALIDATION])
    first_generation = cache.results

    cache.rebuild([make_snapshot("r3", 1)], [APP_QUANTITY_VALIDATION])

    assert set(first_generation) == {"r1", "r2"}
    assert set(cache.results) == {"r3"}


def test_results_are_read_only(cache):
    cache.rebuild([make_snapshot("r1", 1)], [APP_QUANTITY_VALIDATION])

    with pytest.raises(TypeError):
        cache.results["r1"] = None


def test_rule_set_changes_require_rebuild(cache):
    assert cache.needs_rebuild([APP_QUANTITY_VALIDATION])

    cache.rebuild([make_snapshot("r1", 4)], [APP_QUANTITY_VALIDATION])

    assert not cache.needs_rebuild([APP_QUANTITY_VALIDATION])
    assert cache.needs_rebuild([APP_QUANTITY_VALIDATION, MODEL_COUNT_VALIDATION])
    assert cache.enabled_rule_ids == frozenset({APP_QUANTITY_VALIDATION})
