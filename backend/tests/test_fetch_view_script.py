from __future__ import annotations

import json

import pytest

from scripts import fetch_view


@pytest.fixture
def patched_client(monkeypatch, upstream):
    monkeypatch.setattr(fetch_view, "ElectionApiClient", upstream.client)
    return upstream


def test_booths_view_applies_query(patched_client, booth_list_payload, capsys):
    patched_client.ok("/api/constituencies/7/booths", booth_list_payload)

    exit_code = fetch_view.main(["booths", "7", "--turnout", "medium"])

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    fragment = output["fragments"]["booth_list"]
    assert fragment["total"] == 1
    assert fragment["items"][0]["booth_id"] == 102
    assert fragment["items"][0]["turnout_percentage"] == 69.5


def test_regions_view_prints_fallback_when_upstream_is_down(patched_client, capsys):
    patched_client.respond("/api/states", 503, "unavailable")

    exit_code = fetch_view.main(["regions"])

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["degraded"] == {"regions": "http_error"}
    assert output["fragments"]["regions"][0]["name"] == "Uttar Pradesh"


def test_wrong_number_of_ids_is_rejected(patched_client):
    assert fetch_view.main(["booth"]) == 2
    assert fetch_view.main(["compare", "12"]) == 2
    assert patched_client.requests == []


def test_unknown_bucket_is_rejected(patched_client, booth_list_payload):
    patched_client.ok("/api/constituencies/7/booths", booth_list_payload)

    assert fetch_view.main(["booths", "7", "--turnout", "extreme"]) == 2


def test_compare_accepts_many_ids():
    args = fetch_view.parse_args(["compare", "12", "7", "3"])

    view = fetch_view.build_view(args)

    assert view.sub_fetches[0].params == {"boothIds": [12, 7, 3]}
