"""Data requirements of each view, expressed as :class:`ViewSpec` instances."""

from __future__ import annotations

from collections.abc import Iterable

from booth_insights.core.config import settings
from booth_insights.domain import Booth, BoothAnalysis
from ingestion.entities import EntityType

from .aggregation_service import SubFetch, ViewSpec

MIN_COMPARISON_BOOTHS = 2


def _embedded_booths(analysis: BoothAnalysis) -> list:
    return list(analysis.booths)


def _embedded_results(booth: Booth) -> list:
    return list(booth.results)


def regions_view() -> ViewSpec:
    return ViewSpec(
        name="regions",
        sub_fetches=(SubFetch("regions", EntityType.REGIONS, "states"),),
    )


def state_view(state_id: int) -> ViewSpec:
    params = {"state_id": state_id}
    return ViewSpec(
        name="state",
        sub_fetches=(
            SubFetch("state", EntityType.REGION, "state", params),
            SubFetch("constituencies", EntityType.CONSTITUENCIES, "state_assemblies", params),
        ),
        primary="state",
    )


def constituency_view(constituency_id: int, year: int | None = None) -> ViewSpec:
    year = year or settings.results_year
    params = {"constituency_id": constituency_id}
    year_context = {"year": year}
    return ViewSpec(
        name="constituency",
        sub_fetches=(
            SubFetch("constituency", EntityType.CONSTITUENCY, "constituency", params),
            SubFetch(
                "stats",
                EntityType.CONSTITUENCY_STATS,
                "constituency_stats",
                params,
                context=year_context,
            ),
            SubFetch(
                "demographics",
                EntityType.CONSTITUENCY_DEMOGRAPHICS,
                "constituency_demographics",
                params,
            ),
            SubFetch(
                "results",
                EntityType.ELECTION_RESULTS,
                "constituency_results",
                {**params, "year": year},
            ),
            SubFetch("historical_mlas", EntityType.HISTORICAL_MLAS, "historical_mlas", params),
            SubFetch("turnout_trend", EntityType.TURNOUT_TREND, "turnout_trend", params),
            SubFetch("vote_share_trend", EntityType.VOTE_SHARE_TREND, "vote_share_trend", params),
        ),
        primary="constituency",
    )


def booth_analysis_view(constituency_id: int) -> ViewSpec:
    """Summary, booths, clusters, recommendations and demographics of one constituency.

    The booth list is read from the analysis payload when it embeds one;
    recommendations are derived from that same payload, so both share a
    single upstream call.
    """

    params = {"constituency_id": constituency_id}
    return ViewSpec(
        name="booth_analysis",
        sub_fetches=(
            SubFetch("summary", EntityType.BOOTH_ANALYSIS, "booth_analysis", params),
            SubFetch(
                "booth_list",
                EntityType.BOOTHS,
                "constituency_booths",
                {**params, "page": 1, "limit": settings.booth_page_limit},
                embedded_from="summary",
                extract=_embedded_booths,
            ),
            SubFetch("clusters", EntityType.BOOTH_CLUSTERS, "booth_clusters", params),
            SubFetch(
                "recommendations",
                EntityType.BOOTH_RECOMMENDATIONS,
                "booth_analysis",
                params,
            ),
            SubFetch("demographics", EntityType.BOOTH_DEMOGRAPHICS, "booth_demographics", params),
        ),
        primary="summary",
    )


def booth_list_view(constituency_id: int, page: int = 1, limit: int | None = None) -> ViewSpec:
    return ViewSpec(
        name="booth_list",
        sub_fetches=(
            SubFetch(
                "booth_list",
                EntityType.BOOTHS,
                "constituency_booths",
                {
                    "constituency_id": constituency_id,
                    "page": max(1, page),
                    "limit": limit or settings.booth_page_limit,
                },
            ),
        ),
    )


def booth_details_view(booth_id: int) -> ViewSpec:
    """Booth record and its results; results embedded in the booth payload win."""

    params = {"booth_id": booth_id}
    return ViewSpec(
        name="booth_details",
        sub_fetches=(
            SubFetch("booth", EntityType.BOOTH, "booth", params),
            SubFetch(
                "results",
                EntityType.ELECTION_RESULTS,
                "booth_results",
                params,
                embedded_from="booth",
                extract=_embedded_results,
            ),
        ),
        primary="booth",
    )


def comparison_ids(booth_ids: Iterable[int]) -> list[int]:
    """Distinct booth ids in first-seen order; at least two are required."""

    ordered: list[int] = []
    for booth_id in booth_ids:
        if booth_id not in ordered:
            ordered.append(booth_id)
    if len(ordered) < MIN_COMPARISON_BOOTHS:
        raise ValueError(
            f"A comparison needs at least {MIN_COMPARISON_BOOTHS} distinct booths, got {len(ordered)}"
        )
    return ordered


def booth_comparison_view(booth_ids: Iterable[int]) -> ViewSpec:
    return ViewSpec(
        name="booth_comparison",
        sub_fetches=(
            SubFetch(
                "comparison",
                EntityType.BOOTH_COMPARISON,
                "compare_booths",
                {"boothIds": comparison_ids(booth_ids)},
            ),
        ),
    )


__all__ = [
    "booth_analysis_view",
    "booth_comparison_view",
    "booth_details_view",
    "booth_list_view",
    "comparison_ids",
    "constituency_view",
    "regions_view",
    "state_view",
]
