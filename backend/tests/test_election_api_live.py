from __future__ import annotations

import asyncio

import pytest

from ingestion.client import ElectionApiClient
from ingestion.entities import EntityType
from ingestion.normalize import normalize_outcome
from ingestion.outcomes import SourceError


@pytest.mark.network
def test_election_api_live_fetches_states():
    async def scenario():
        async with ElectionApiClient() as client:
            return await client.fetch("states")

    outcome = asyncio.run(scenario())
    if isinstance(outcome, SourceError):
        pytest.skip(f"Election API unavailable: {outcome.reason.value} {outcome.detail}")

    normalized = normalize_outcome(EntityType.REGIONS, outcome)
    assert normalized.synthetic is False, "states payload did not match the expected shape"
    assert normalized.value, "Election API returned no states"
    for region in normalized.value:
        assert region.region_id
        assert region.name
