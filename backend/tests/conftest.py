from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import httpx
import pytest

from booth_insights.core.config import Settings
from ingestion.client import ElectionApiClient

DATA_DIR = Path(__file__).parent / "data"
UPSTREAM_BASE_URL = "http://upstream.test"


def _load(name: str) -> Any:
    return json.loads((DATA_DIR / name).read_text(encoding="utf-8"))


@pytest.fixture
def booth_analysis_payload() -> dict[str, Any]:
    return _load("booth_analysis.json")


@pytest.fixture
def booth_list_payload() -> list[dict[str, Any]]:
    return _load("booth_list.json")


@pytest.fixture
def election_results_payload() -> list[dict[str, Any]]:
    return _load("election_results.json")


class FakeUpstream:
    """Route table served through ``httpx.MockTransport``.

    A route is a ``(status, body)`` pair (dict/list bodies are sent as JSON,
    strings as text), a callable taking the request, or an exception to raise.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    def ok(self, path: str, data: Any, **extra: Any) -> None:
        self.routes[path] = (200, {"success": True, "data": data, **extra})

    def respond(self, path: str, status: int, body: Any) -> None:
        self.routes[path] = (status, body)

    def fail(self, path: str, exc: Exception) -> None:
        self.routes[path] = exc

    def on(self, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[path] = handler

    def calls_to(self, path: str) -> int:
        return sum(1 for request in self.requests if request.url.path == path)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"success": False, "error": "Not found"})
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(request)
        status, body = route
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def client(self) -> ElectionApiClient:
        return ElectionApiClient(
            base_url=UPSTREAM_BASE_URL,
            timeout=5.0,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings(monkeypatch) -> Settings:
    settings = Settings(
        api_base_url=UPSTREAM_BASE_URL,
        cache_ttl_seconds=60,
        booth_page_limit=25,
        query_page_size=5,
    )
    monkeypatch.setattr("booth_insights.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("booth_insights.core.config.settings", settings)
    return settings
