from __future__ import annotations

import pytest
from pydantic import ValidationError

from booth_insights.core.config import Settings
from booth_insights.schemas import EnvelopeMeta, UpstreamEnvelope


def test_envelope_meta_coerces_string_counts():
    """Verify that pagination counts sent as strings become integers."""
    meta = EnvelopeMeta.model_validate({"page": "2", "limit": "100", "total": "439.0", "totalPages": 5})

    assert meta.page == 2
    assert meta.limit == 100
    assert meta.total == 439
    assert meta.total_pages == 5


def test_envelope_meta_drops_unusable_values():
    """Verify that malformed counts are discarded rather than rejected."""
    meta = EnvelopeMeta.model_validate({"page": "first", "limit": True, "total": None})

    assert meta.page is None
    assert meta.limit is None
    assert meta.total is None


def test_envelope_requires_success_and_data():
    """Verify the minimal structural contract shared by every endpoint."""
    with pytest.raises(ValidationError):
        UpstreamEnvelope.model_validate({"data": []})
    with pytest.raises(ValidationError):
        UpstreamEnvelope.model_validate({"success": True})


def test_envelope_ignores_malformed_meta():
    envelope = UpstreamEnvelope.model_validate({"success": True, "data": [1], "meta": "page 1"})

    assert envelope.meta is None
    assert envelope.data == [1]


def test_settings_validation():
    """Verify settings normalize the base URL and reject non-positive lifetimes."""
    settings = Settings(api_base_url="http://example.test/", cache_ttl_seconds=30)

    assert settings.api_base_url == "http://example.test"
    with pytest.raises(ValidationError):
        Settings(cache_ttl_seconds=0)
    with pytest.raises(ValidationError):
        Settings(request_timeout_seconds=-1)
