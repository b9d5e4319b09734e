from __future__ import annotations

import pytest

from booth_insights.cache import DEFAULT_TTL_SECONDS, ExpiringCache, fingerprint, request_key
from ingestion.entities import EntityType


def test_set_then_get_returns_value(clock):
    cache = ExpiringCache(clock=clock)
    value = {"booths": [1, 2]}

    cache.set("k", value, ttl=0.5)

    assert cache.get("k") is value
    assert cache.default_ttl == DEFAULT_TTL_SECONDS


def test_entry_is_live_until_expiry_instant(clock):
    cache = ExpiringCache(default_ttl=10, clock=clock)
    cache.set("k", "v")

    clock.advance(10)
    assert cache.get("k") == "v"


def test_expired_entry_is_evicted_and_not_resurrected(clock):
    cache = ExpiringCache(default_ttl=10, clock=clock)
    cache.set("k", "v")

    clock.advance(10.01)

    assert cache.get("k") is None
    assert len(cache) == 0
    assert cache.get("k") is None


def test_set_overwrites_value_and_expiry(clock):
    cache = ExpiringCache(default_ttl=10, clock=clock)
    cache.set("k", "old", ttl=1)
    clock.advance(0.5)
    cache.set("k", "new", ttl=5)

    clock.advance(2)
    assert cache.get("k") == "new"


def test_contains_does_not_evict(clock):
    cache = ExpiringCache(default_ttl=1, clock=clock)
    cache.set("k", "v")
    clock.advance(2)

    assert "k" not in cache
    assert len(cache) == 1
    assert cache.keys() == ["k"]


def test_delete_and_clear(clock):
    cache = ExpiringCache(clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)

    assert cache.delete("a") is True
    assert cache.delete("a") is False
    assert cache.clear() == 2
    assert len(cache) == 0


def test_non_positive_default_ttl_rejected():
    with pytest.raises(ValueError):
        ExpiringCache(default_ttl=0)


def test_fingerprint_is_order_independent_and_skips_none():
    first = fingerprint(EntityType.BOOTHS, "constituency_booths", {"limit": 100, "constituency_id": 7, "q": None})
    second = fingerprint("booths", "constituency_booths", {"constituency_id": 7, "limit": 100})

    assert first == second == "booths:constituency_booths?constituency_id=7&limit=100"


def test_fingerprint_distinguishes_entities_sharing_an_endpoint():
    params = {"constituency_id": 1}

    analysis = fingerprint(EntityType.BOOTH_ANALYSIS, "booth_analysis", params)
    recommendations = fingerprint(EntityType.BOOTH_RECOMMENDATIONS, "booth_analysis", params)

    assert analysis != recommendations
    assert analysis.endswith(request_key("booth_analysis", params))


def test_request_key_joins_sequences():
    assert request_key("compare_booths", {"boothIds": [12, 7]}) == "compare_booths?boothIds=12%2C7"
    assert request_key("states") == "states"


def test_stored_none_is_distinguishable_from_a_miss(clock):
    cache = ExpiringCache(default_ttl=10, clock=clock)
    missing = object()
    cache.set("k", None)

    assert cache.get("k", missing) is None
    assert cache.get("other", missing) is missing
    clock.advance(11)
    assert cache.get("k", missing) is missing
