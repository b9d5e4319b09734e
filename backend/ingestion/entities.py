from __future__ import annotations

from enum import Enum


class EntityType(str, Enum):
    REGIONS = "regions"
    REGION = "region"
    CONSTITUENCIES = "constituencies"
    CONSTITUENCY = "constituency"
    CONSTITUENCY_STATS = "constituency_stats"
    CONSTITUENCY_DEMOGRAPHICS = "constituency_demographics"
    ELECTION_RESULTS = "election_results"
    HISTORICAL_MLAS = "historical_mlas"
    BOOTHS = "booths"
    BOOTH = "booth"
    BOOTH_ANALYSIS = "booth_analysis"
    BOOTH_CLUSTERS = "booth_clusters"
    BOOTH_RECOMMENDATIONS = "booth_recommendations"
    BOOTH_DEMOGRAPHICS = "booth_demographics"
    BOOTH_COMPARISON = "booth_comparison"
    TURNOUT_TREND = "turnout_trend"
    VOTE_SHARE_TREND = "vote_share_trend"


class UnknownEntityTypeError(LookupError):
    """Raised when normalization is requested for an unregistered entity type."""


def resolve_entity_type(entity_type: EntityType | str) -> EntityType:
    try:
        return EntityType(entity_type)
    except ValueError as exc:
        raise UnknownEntityTypeError(f"Entity type '{entity_type}' is not registered") from exc


__all__ = ["EntityType", "UnknownEntityTypeError", "resolve_entity_type"]
