from __future__ import annotations

import pytest

from booth_insights.domain import ComparisonSet
from ingestion.entities import EntityType, UnknownEntityTypeError
from ingestion.fallbacks import FALLBACK_BUILDERS, booth_element, build_fallback


def test_every_entity_type_has_a_fallback():
    assert set(FALLBACK_BUILDERS) == set(EntityType)


def test_constituency_fallbacks_describe_one_consistent_seat():
    constituency = build_fallback(EntityType.CONSTITUENCY, {"constituency_id": 5})
    stats = build_fallback(EntityType.CONSTITUENCY_STATS, {"constituency_id": 5})
    results = build_fallback(EntityType.ELECTION_RESULTS, {"constituency_id": 5})

    assert constituency.constituency_id == stats.constituency_id == 5
    assert constituency.elector_count == stats.elector_count
    assert stats.winner_candidate == results[0].candidate_name
    assert stats.margin_votes == results[0].votes - results[1].votes
    assert [result.rank for result in results] == [1, 2]
    assert all(record.synthetic for record in (constituency, stats, *results))


def test_booth_element_is_deterministic_and_in_range():
    booths = [booth_element(index, {}) for index in range(50)]

    assert booths == [booth_element(index, {}) for index in range(50)]
    for booth in booths:
        assert 500 <= booth.elector_count < 1000
        assert booth.votes_cast <= booth.elector_count
        assert 0 <= booth.turnout_percentage <= 100
        assert booth.male_electors + booth.female_electors == booth.elector_count


def test_comparison_fallback_follows_requested_ids():
    comparison = build_fallback(EntityType.BOOTH_COMPARISON, {"boothIds": [12, 7]})

    assert isinstance(comparison, ComparisonSet)
    assert comparison.booth_ids == (12, 7)
    assert [booth.booth_id for booth in comparison.booths] == [12, 7]
    assert comparison.summary.elector_total == sum(b.elector_count for b in comparison.booths)


def test_booth_fallback_uses_requested_id():
    booth = build_fallback(EntityType.BOOTH, {"booth_id": 42})

    assert booth.booth_id == 42
    assert booth.number == "42"


def test_unregistered_type_raises():
    with pytest.raises(UnknownEntityTypeError):
        build_fallback("candidates")


def test_booth_fallback_belongs_to_requested_constituency():
    booth = build_fallback(EntityType.BOOTH, {"booth_id": 42, "constituency_id": 9})
    default = build_fallback(EntityType.BOOTH, {"booth_id": 42})

    assert booth.constituency_id == 9
    assert default.constituency_id == 1
