from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from ingestion.client import ENDPOINTS, ElectionApiClient, UnknownEndpointError
from ingestion.outcomes import FailureReason, SourceError, SourceOk


def _fetch(upstream, endpoint, params=None):
    async def scenario():
        async with upstream.client() as client:
            return await client.fetch(endpoint, params)

    return asyncio.run(scenario())


def test_fetch_returns_ok_with_envelope_data(upstream):
    upstream.ok(
        "/api/constituencies/7/booths",
        [{"booth_id": 1}],
        meta={"page": "1", "limit": 100, "total": 1, "totalPages": 1},
    )

    outcome = _fetch(upstream, "constituency_booths", {"constituency_id": 7, "page": 1, "limit": 100})

    assert isinstance(outcome, SourceOk)
    assert outcome.payload == [{"booth_id": 1}]
    assert outcome.meta.page == 1
    assert outcome.meta.total_pages == 1
    request = upstream.requests[0]
    assert request.method == "GET"
    assert dict(request.url.params) == {"page": "1", "limit": "100"}
    assert request.headers["accept"] == "application/json"


def test_post_endpoint_sends_json_body(upstream):
    upstream.ok("/api/booth-analysis/compare", [])

    outcome = _fetch(upstream, "compare_booths", {"boothIds": [12, 7]})

    assert isinstance(outcome, SourceOk)
    request = upstream.requests[0]
    assert request.method == "POST"
    assert json.loads(request.content) == {"boothIds": [12, 7]}


def test_non_2xx_is_http_error_with_status_and_body(upstream):
    upstream.respond("/api/states", 503, {"success": False, "error": "maintenance"})

    outcome = _fetch(upstream, "states")

    assert isinstance(outcome, SourceError)
    assert outcome.reason is FailureReason.HTTP_ERROR
    assert outcome.status_code == 503
    assert "maintenance" in outcome.body


@pytest.mark.parametrize(
    "body",
    [
        {"data": []},
        {"success": True},
        "<html>gateway</html>",
        [1, 2, 3],
    ],
)
def test_envelope_violations_are_shape_errors(upstream, body):
    upstream.respond("/api/states", 200, body)

    outcome = _fetch(upstream, "states")

    assert isinstance(outcome, SourceError)
    assert outcome.reason is FailureReason.SHAPE_ERROR


def test_unsuccessful_envelope_is_shape_error_with_upstream_message(upstream):
    upstream.respond("/api/states/9", 200, {"success": False, "data": None, "error": "State not found"})

    outcome = _fetch(upstream, "state", {"state_id": 9})

    assert isinstance(outcome, SourceError)
    assert outcome.reason is FailureReason.SHAPE_ERROR
    assert outcome.detail == "State not found"


def test_null_data_with_success_is_ok(upstream):
    upstream.respond("/api/states", 200, {"success": True, "data": None})

    outcome = _fetch(upstream, "states")

    assert isinstance(outcome, SourceOk)
    assert outcome.payload is None


def test_transport_failures_are_network_errors(upstream):
    upstream.fail("/api/states", httpx.ConnectError("connection refused"))
    upstream.fail("/api/booths/3", httpx.ReadTimeout("read timed out"))

    refused = _fetch(upstream, "states")
    timed_out = _fetch(upstream, "booth", {"booth_id": 3})

    assert refused.reason is FailureReason.NETWORK
    assert timed_out.reason is FailureReason.NETWORK
    assert timed_out.detail.startswith("timeout")


@pytest.mark.parametrize(
    "exc",
    [httpx.DecodingError("incorrect header check"), httpx.TooManyRedirects("redirect loop")],
)
def test_request_errors_beyond_transport_are_network_errors(upstream, exc):
    upstream.fail("/api/states", exc)

    outcome = _fetch(upstream, "states")

    assert isinstance(outcome, SourceError)
    assert outcome.reason is FailureReason.NETWORK


def test_undecodable_gzip_body_is_network_error(upstream):
    upstream.on(
        "/api/states",
        lambda request: httpx.Response(
            200, headers={"content-encoding": "gzip"}, content=b"not gzip at all"
        ),
    )

    outcome = _fetch(upstream, "states")

    assert outcome.reason is FailureReason.NETWORK


def test_too_deeply_nested_json_is_shape_error(upstream):
    upstream.respond("/api/states", 200, "[" * 100_000 + "]" * 100_000)

    outcome = _fetch(upstream, "states")

    assert isinstance(outcome, SourceError)
    assert outcome.reason is FailureReason.SHAPE_ERROR


def test_unknown_endpoint_and_missing_path_params_raise(upstream):
    with pytest.raises(UnknownEndpointError):
        _fetch(upstream, "candidates")
    with pytest.raises(UnknownEndpointError):
        _fetch(upstream, "booth", {})
    assert upstream.requests == []


def test_registry_path_params():
    assert ENDPOINTS["booth_clusters"].path_params == ("constituency_id",)
    assert ENDPOINTS["states"].path_params == ()
    assert ENDPOINTS["compare_booths"].method == "POST"


def test_client_uses_settings_defaults(test_settings, monkeypatch):
    monkeypatch.setattr("ingestion.client.settings", test_settings)
    client = ElectionApiClient()
    try:
        assert client.base_url == "http://upstream.test"
        assert client.timeout == test_settings.request_timeout_seconds
    finally:
        asyncio.run(client.aclose())
