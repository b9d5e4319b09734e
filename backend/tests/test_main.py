from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from booth_insights.cache import ExpiringCache
from booth_insights.domain import Booth, Region
from booth_insights.main import _aggregation_service, app
from booth_insights.services.aggregation_service import (
    AggregationService,
    CompositeResult,
    FragmentOrigin,
)


@pytest.fixture
def client():
    """Test client that cleans up dependency overrides after each test."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def mock_service():
    service = MagicMock()
    service.cache = ExpiringCache()
    service.load = AsyncMock()
    app.dependency_overrides[_aggregation_service] = lambda: service
    return service


def _booth(booth_id: int, turnout: float, party: str) -> Booth:
    return Booth(
        booth_id=booth_id,
        number=str(booth_id),
        name=f"Booth {booth_id}",
        constituency_id=1,
        elector_count=600,
        votes_cast=int(6 * turnout),
        male_electors=300,
        female_electors=300,
        other_electors=0,
        turnout_percentage=turnout,
        winning_party=party,
    )


def test_healthcheck(client, mock_service):
    """Verify the healthcheck endpoint reports the cache size."""
    mock_service.cache.set("k", "v")

    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "cached_entries": 1}


def test_regions_view_renders_fragments(client, mock_service):
    """Verify dataclass fragments are serialized with origins and degradation info."""
    mock_service.load.return_value = CompositeResult(
        view="regions",
        fragments={"regions": [Region(1, "Uttar Pradesh", "Lucknow", 403)]},
        origins={"regions": FragmentOrigin.CACHE},
        primary="regions",
    )

    response = client.get("/views/regions")

    assert response.status_code == 200
    body = response.json()
    assert body["view"] == "regions"
    assert body["fragments"]["regions"][0]["name"] == "Uttar Pradesh"
    assert body["fragments"]["regions"][0]["synthetic"] is False
    assert body["origins"] == {"regions": "cache"}
    assert body["degraded"] == {}


def test_constituency_view_passes_year(client, mock_service):
    mock_service.load.return_value = CompositeResult(view="constituency", fragments={})

    response = client.get("/views/constituencies/12", params={"year": 2017})

    assert response.status_code == 200
    view = mock_service.load.await_args.args[0]
    results = next(sub for sub in view.sub_fetches if sub.name == "results")
    assert results.params == {"constituency_id": 12, "year": 2017}


def test_booth_comparison_parses_ids_in_order(client, mock_service):
    mock_service.load.return_value = CompositeResult(view="booth_comparison", fragments={})

    response = client.get("/views/booth-comparison", params={"booths": "12,7"})

    assert response.status_code == 200
    view = mock_service.load.await_args.args[0]
    assert view.sub_fetches[0].params == {"boothIds": [12, 7]}


@pytest.mark.parametrize("booths", ["12", "12,12", "a,b"])
def test_booth_comparison_rejects_invalid_sets(client, mock_service, booths):
    response = client.get("/views/booth-comparison", params={"booths": booths})

    assert response.status_code == 422
    mock_service.load.assert_not_awaited()


def test_list_constituency_booths_filters_and_pages(client, mock_service):
    mock_service.load.return_value = CompositeResult(
        view="booth_list",
        fragments={
            "booth_list": [_booth(1, 69.5, "SP"), _booth(2, 80.0, "BJP"), _booth(3, 55.0, "SP")]
        },
        degraded={"booth_list": "http_error"},
    )

    response = client.get(
        "/constituencies/1/booths", params={"turnout": "medium", "party": "SP", "page_size": 1}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["total_pages"] == 2
    assert body["page"] == 1
    assert body["page_size"] == 1
    assert [item["booth_id"] for item in body["items"]] == [1]
    assert body["degraded"] is True


def test_list_constituency_booths_rejects_unknown_bucket(client, mock_service):
    mock_service.load.return_value = CompositeResult(
        view="booth_list", fragments={"booth_list": [_booth(1, 69.5, "SP")]}
    )

    response = client.get("/constituencies/1/booths", params={"turnout": "extreme"})

    assert response.status_code == 422


def test_clear_cache(client, mock_service):
    mock_service.clear_cache.return_value = 1

    response = client.post("/cache/clear", params={"key": "regions:states"})

    assert response.status_code == 200
    assert response.json() == {"scope": "regions:states", "removed": 1, "remaining": 0}
    mock_service.clear_cache.assert_called_once_with("regions:states")


def test_booth_analysis_view_end_to_end_with_degraded_source(client, upstream, booth_analysis_payload):
    """A failing sub-fetch still yields a complete view through the real service."""
    upstream.ok("/api/constituencies/1/booth-analysis", booth_analysis_payload)
    upstream.ok("/api/booth-analysis/clusters/1", {"clusters": []})
    upstream.respond("/api/booth-analysis/demographics/1", 500, "down")
    service = AggregationService(
        upstream.client(), ExpiringCache(), dedupe_inflight=False, cache_fallbacks=True
    )
    app.dependency_overrides[_aggregation_service] = lambda: service

    response = client.get("/views/constituencies/1/booth-analysis")

    assert response.status_code == 200
    body = response.json()
    assert body["primary"] == "summary"
    assert body["origins"]["booth_list"] == "embedded"
    assert body["degraded"] == {"demographics": "http_error"}
    assert body["fragments"]["demographics"]["synthetic"] is True
    assert len(body["fragments"]["booth_list"]) == 3
    assert body["fragments"]["recommendations"][0]["category"] == "high_density_strategic"
