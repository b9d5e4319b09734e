"""Deterministic stand-ins for unusable upstream data.

There is exactly one canonical fallback per entity type, all describing the
same constituency (Behat, 2022) so a fully degraded view stays internally
consistent. Builders are pure: the same entity type and request context
always produce equal records, each flagged ``synthetic=True``. Owning
identifiers (constituency, state, booth) are taken from the request context
when present.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from booth_insights.domain import (
    Booth,
    BoothAnalysis,
    BoothAnalysisSummary,
    BoothCluster,
    BoothInsights,
    BoothRecommendation,
    ClusterReport,
    ComparisonSet,
    ComparisonSummary,
    Constituency,
    ConstituencyCategory,
    ConstituencyDemographics,
    ConstituencyStats,
    DemographicInsights,
    ElectionResult,
    HistoricalMLA,
    PartyDominance,
    RecommendationCategory,
    Region,
    TurnoutTrendPoint,
    VoteSharePoint,
)

from .coerce import mean, percentage_of, to_count, to_int
from .entities import EntityType, UnknownEntityTypeError

Context = Mapping[str, Any]

FALLBACK_CONSTITUENCY_ID = 1
FALLBACK_STATE_ID = 1
FALLBACK_YEAR = 2022
FALLBACK_BOOTH_COUNT = 10

_REGIONS: tuple[tuple[str, str | None, int], ...] = (
    ("Uttar Pradesh", "Lucknow", 403),
    ("Maharashtra", "Mumbai", 288),
    ("West Bengal", "Kolkata", 294),
    ("Bihar", "Patna", 243),
    ("Tamil Nadu", "Chennai", 234),
)

_CONSTITUENCIES: tuple[tuple[str, str, str, ConstituencyCategory], ...] = (
    ("Behat", "Saharanpur", "Saharanpur", ConstituencyCategory.GENERAL),
    ("Ajagara", "Varanasi", "Chandauli", ConstituencyCategory.SCHEDULED_CASTE),
    ("Varanasi North", "Varanasi", "Varanasi", ConstituencyCategory.GENERAL),
    ("Pindra", "Varanasi", "Chandauli", ConstituencyCategory.GENERAL),
)


def _constituency_id(context: Context) -> int:
    return to_count(context.get("constituency_id"), FALLBACK_CONSTITUENCY_ID)


def _state_id(context: Context) -> int:
    return to_count(context.get("state_id"), FALLBACK_STATE_ID)


def _year(context: Context) -> int:
    return to_int(context.get("year"), FALLBACK_YEAR)


# ----------------------------------------------------------------------
# Element fallbacks (one malformed item inside an otherwise usable list)


def region_element(index: int, context: Context) -> Region:
    return Region(region_id=index + 1, name=f"State {index + 1}", synthetic=True)


def constituency_element(index: int, context: Context) -> Constituency:
    return Constituency(
        constituency_id=index + 1,
        name=f"Constituency {index + 1}",
        region_id=_state_id(context),
        district="",
        parliament_seat="",
        category=ConstituencyCategory.GENERAL,
        elector_count=0,
        booth_count=0,
        synthetic=True,
    )


def booth_element(index: int, context: Context) -> Booth:
    """Synthetic booth numbered ``index + 1`` with fixed plausible counts."""

    number = index + 1
    electors = 500 + (number * 53) % 500
    votes = electors * (70 + number % 10) // 100
    male = electors * 52 // 100
    return Booth(
        booth_id=number,
        number=str(number),
        name=f"Polling Station {number}",
        constituency_id=_constituency_id(context),
        elector_count=electors,
        votes_cast=votes,
        male_electors=male,
        female_electors=electors - male,
        other_electors=0,
        turnout_percentage=percentage_of(votes, electors),
        synthetic=True,
    )


def result_element(index: int, context: Context) -> ElectionResult:
    return ElectionResult(
        result_id=index + 1,
        constituency_id=_constituency_id(context),
        year=_year(context),
        candidate_name="Unknown candidate",
        party_name="Unknown",
        votes=0,
        vote_percentage=0.0,
        rank=0,
        synthetic=True,
    )


def mla_element(index: int, context: Context) -> HistoricalMLA:
    return HistoricalMLA(
        year=_year(context), name="Unknown", party_name="Unknown", is_winner=False, synthetic=True
    )


def party_dominance_element(index: int, context: Context) -> PartyDominance:
    return PartyDominance(party_name="Unknown", booths_won=0, total_votes=0)


def cluster_element(index: int, context: Context) -> BoothCluster:
    return BoothCluster(
        cluster_type=f"Cluster_{index + 1}",
        booth_count=0,
        mean_electors=0.0,
        mean_turnout=0.0,
        synthetic=True,
    )


def recommendation_element(index: int, context: Context) -> BoothRecommendation:
    return BoothRecommendation(
        booth_id=index + 1,
        booth_number=str(index + 1),
        booth_name=f"Polling Station {index + 1}",
        elector_count=0,
        turnout_percentage=0.0,
        winning_party=None,
        category=RecommendationCategory.HIGHLY_COMPETITIVE,
        strategy="Competitive area requiring strategic planning",
        synthetic=True,
    )


def turnout_point_element(index: int, context: Context) -> TurnoutTrendPoint:
    return TurnoutTrendPoint(
        year=0, turnout_percentage=0.0, elector_count=0, votes_cast=0, synthetic=True
    )


def vote_share_element(index: int, context: Context) -> VoteSharePoint:
    return VoteSharePoint(year=0, shares={}, synthetic=True)


# ----------------------------------------------------------------------
# Whole-fragment fallbacks


def _regions(context: Context) -> list[Region]:
    return [
        Region(
            region_id=index + 1,
            name=name,
            capital=capital,
            constituency_count=count,
            synthetic=True,
        )
        for index, (name, capital, count) in enumerate(_REGIONS)
    ]


def _region(context: Context) -> Region:
    state_id = _state_id(context)
    if 1 <= state_id <= len(_REGIONS):
        name, capital, count = _REGIONS[state_id - 1]
        return Region(state_id, name, capital, count, synthetic=True)
    return Region(region_id=state_id, name=f"State {state_id}", synthetic=True)


def _constituencies(context: Context) -> list[Constituency]:
    state_id = _state_id(context)
    return [
        Constituency(
            constituency_id=index + 1,
            name=name,
            region_id=state_id,
            district=district,
            parliament_seat=seat,
            category=category,
            elector_count=0,
            booth_count=0,
            synthetic=True,
        )
        for index, (name, district, seat, category) in enumerate(_CONSTITUENCIES)
    ]


def _constituency(context: Context) -> Constituency:
    return Constituency(
        constituency_id=_constituency_id(context),
        name="Behat",
        region_id=_state_id(context),
        district="Saharanpur",
        parliament_seat="Saharanpur",
        category=ConstituencyCategory.GENERAL,
        elector_count=372079,
        booth_count=439,
        region_name="Uttar Pradesh",
        synthetic=True,
    )


def _constituency_stats(context: Context) -> ConstituencyStats:
    return ConstituencyStats(
        constituency_id=_constituency_id(context),
        name="Behat",
        elector_count=372079,
        booth_count=439,
        turnout_percentage=75.5,
        winner_candidate="Umar Ali Khan",
        winner_party="Samajwadi Party",
        winner_votes=134396,
        winner_vote_percentage=47.84,
        margin_votes=38007,
        margin_percentage=13.53,
        synthetic=True,
    )


def _constituency_demographics(context: Context) -> ConstituencyDemographics:
    return ConstituencyDemographics(
        scheduled_caste=20.0,
        scheduled_tribe=10.0,
        other_backward_class=35.0,
        general=35.0,
        urban=40.0,
        rural=60.0,
        male=40.0,
        female=36.0,
        other=0.0,
        synthetic=True,
    )


def _election_results(context: Context) -> list[ElectionResult]:
    constituency_id = _constituency_id(context)
    year = _year(context)
    return [
        ElectionResult(
            result_id=1,
            constituency_id=constituency_id,
            year=year,
            candidate_name="Umar Ali Khan",
            party_name="Samajwadi Party",
            votes=134396,
            vote_percentage=47.84,
            rank=1,
            margin_votes=38007,
            margin_percentage=13.53,
            synthetic=True,
        ),
        ElectionResult(
            result_id=2,
            constituency_id=constituency_id,
            year=year,
            candidate_name="Naresh Saini",
            party_name="Bharatiya Janata Party",
            votes=96389,
            vote_percentage=34.31,
            rank=2,
            synthetic=True,
        ),
    ]


def _historical_mlas(context: Context) -> list[HistoricalMLA]:
    return [
        HistoricalMLA(
            year=FALLBACK_YEAR,
            name="Umar Ali Khan",
            party_name="Samajwadi Party",
            is_winner=True,
            synthetic=True,
        )
    ]


def _booths(context: Context) -> list[Booth]:
    return [booth_element(index, context) for index in range(FALLBACK_BOOTH_COUNT)]


def _booth(context: Context) -> Booth:
    booth_id = to_count(context.get("booth_id"), 1)
    booth = _analysis_booths(_constituency_id(context))[0]
    booth.booth_id = booth_id
    booth.number = str(booth_id)
    return booth


def _analysis_booths(constituency_id: int) -> list[Booth]:
    return [
        Booth(
            booth_id=1,
            number="1",
            name="UCHCHA PRATHMIK VIDYALAYA ROOM NO. 1 RAHNA",
            constituency_id=constituency_id,
            elector_count=1165,
            votes_cast=804,
            male_electors=449,
            female_electors=355,
            other_electors=0,
            turnout_percentage=69.01,
            winning_party="Samajwadi Party",
            winning_votes=451,
            synthetic=True,
        ),
        Booth(
            booth_id=2,
            number="2",
            name="PRATHMIK VIDYALAYA ROOM NO. 1 JANIPUR MAJRA FAIZABAD",
            constituency_id=constituency_id,
            elector_count=887,
            votes_cast=789,
            male_electors=423,
            female_electors=366,
            other_electors=0,
            turnout_percentage=88.95,
            winning_party="Samajwadi Party",
            winning_votes=773,
            synthetic=True,
        ),
    ]


def _booth_analysis(context: Context) -> BoothAnalysis:
    constituency_id = _constituency_id(context)
    return BoothAnalysis(
        constituency_id=constituency_id,
        summary=BoothAnalysisSummary(
            constituency_name="Behat",
            booth_count=439,
            elector_count=372079,
            votes_cast=280938,
            mean_turnout=75.5,
        ),
        booths=_analysis_booths(constituency_id),
        party_dominance=[
            PartyDominance("Samajwadi Party", booths_won=236, total_votes=109460),
            PartyDominance("Bharatiya Janata Party", booths_won=169, total_votes=68808),
            PartyDominance("Bahujan Samaj Party", booths_won=34, total_votes=12332),
        ],
        insights=BoothInsights(
            high_turnout_booths=350,
            low_turnout_booths=89,
            large_booths=113,
            booths_analyzed=439,
        ),
        synthetic=True,
    )


def _booth_clusters(context: Context) -> ClusterReport:
    return ClusterReport(
        clusters=[
            BoothCluster("High_Turnout_Large", 182, 991.0, 77.92, synthetic=True),
            BoothCluster("High_Turnout_Small", 168, 675.0, 78.81, synthetic=True),
        ],
        total_clusters=2,
        total_booths=350,
        synthetic=True,
    )


def _booth_recommendations(context: Context) -> list[BoothRecommendation]:
    first, second = _analysis_booths(_constituency_id(context))
    return [
        BoothRecommendation(
            booth_id=first.booth_id,
            booth_number=first.number,
            booth_name=first.name,
            elector_count=first.elector_count,
            turnout_percentage=first.turnout_percentage,
            winning_party=first.winning_party,
            category=RecommendationCategory.HIGH_DENSITY_STRATEGIC,
            strategy="Focus on voter mobilization due to high density",
            synthetic=True,
        ),
        BoothRecommendation(
            booth_id=second.booth_id,
            booth_number=second.number,
            booth_name=second.name,
            elector_count=second.elector_count,
            turnout_percentage=second.turnout_percentage,
            winning_party=second.winning_party,
            category=RecommendationCategory.HIGHLY_COMPETITIVE,
            strategy="Competitive area requiring strategic planning",
            synthetic=True,
        ),
    ]


def _booth_demographics(context: Context) -> DemographicInsights:
    return DemographicInsights(
        elector_count=372079,
        male_electors=147568,
        female_electors=133369,
        mean_male_percentage=40.0,
        mean_female_percentage=36.0,
        male_dominated_booths=120,
        female_dominated_booths=80,
        balanced_booths=239,
        synthetic=True,
    )


def _booth_comparison(context: Context) -> ComparisonSet:
    raw_ids = context.get("boothIds") or ()
    booth_ids = tuple(to_count(value) for value in raw_ids)
    booths = []
    for booth_id in booth_ids:
        booth = booth_element(max(booth_id, 1) - 1, context)
        booth.booth_id = booth_id
        booths.append(booth)
    return ComparisonSet(
        booth_ids=booth_ids,
        booths=booths,
        summary=ComparisonSummary(
            booth_count=len(booths),
            elector_total=sum(booth.elector_count for booth in booths),
            votes_total=sum(booth.votes_cast for booth in booths),
            mean_turnout=mean(booth.turnout_percentage for booth in booths),
        ),
        synthetic=True,
    )


def _turnout_trend(context: Context) -> list[TurnoutTrendPoint]:
    return [
        TurnoutTrendPoint(2012, 68.5, 250000, 171250, synthetic=True),
        TurnoutTrendPoint(2017, 71.2, 300000, 213600, synthetic=True),
        TurnoutTrendPoint(2022, 75.5, 372079, 280938, synthetic=True),
    ]


def _vote_share_trend(context: Context) -> list[VoteSharePoint]:
    return [
        VoteSharePoint(
            2012, {"BJP": 35.0, "SP": 28.0, "BSP": 22.0, "INC": 10.0, "OTHERS": 5.0}, synthetic=True
        ),
        VoteSharePoint(
            2017, {"BJP": 42.0, "SP": 32.0, "BSP": 15.0, "INC": 6.0, "OTHERS": 5.0}, synthetic=True
        ),
        VoteSharePoint(
            2022, {"BJP": 34.0, "SP": 48.0, "BSP": 8.0, "INC": 3.0, "OTHERS": 7.0}, synthetic=True
        ),
    ]


FallbackBuilder = Callable[[Context], Any]

FALLBACK_BUILDERS: dict[EntityType, FallbackBuilder] = {
    EntityType.REGIONS: _regions,
    EntityType.REGION: _region,
    EntityType.CONSTITUENCIES: _constituencies,
    EntityType.CONSTITUENCY: _constituency,
    EntityType.CONSTITUENCY_STATS: _constituency_stats,
    EntityType.CONSTITUENCY_DEMOGRAPHICS: _constituency_demographics,
    EntityType.ELECTION_RESULTS: _election_results,
    EntityType.HISTORICAL_MLAS: _historical_mlas,
    EntityType.BOOTHS: _booths,
    EntityType.BOOTH: _booth,
    EntityType.BOOTH_ANALYSIS: _booth_analysis,
    EntityType.BOOTH_CLUSTERS: _booth_clusters,
    EntityType.BOOTH_RECOMMENDATIONS: _booth_recommendations,
    EntityType.BOOTH_DEMOGRAPHICS: _booth_demographics,
    EntityType.BOOTH_COMPARISON: _booth_comparison,
    EntityType.TURNOUT_TREND: _turnout_trend,
    EntityType.VOTE_SHARE_TREND: _vote_share_trend,
}


def build_fallback(entity_type: EntityType, context: Context | None = None) -> Any:
    """Return the canonical synthetic fragment for ``entity_type``."""

    try:
        builder = FALLBACK_BUILDERS[entity_type]
    except KeyError as exc:
        raise UnknownEntityTypeError(f"No fallback registered for '{entity_type}'") from exc
    return builder(context or {})


_missing = set(EntityType) - set(FALLBACK_BUILDERS)
if _missing:  # pragma: no cover - import-time registry check
    raise RuntimeError(f"Fallback builders missing for: {sorted(item.value for item in _missing)}")


__all__ = [
    "FALLBACK_BUILDERS",
    "booth_element",
    "build_fallback",
    "cluster_element",
    "constituency_element",
    "mla_element",
    "party_dominance_element",
    "recommendation_element",
    "region_element",
    "result_element",
    "turnout_point_element",
    "vote_share_element",
]
