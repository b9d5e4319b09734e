from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

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

from . import fallbacks
from .coerce import (
    clamp_percentage,
    mean,
    parse_number,
    percentage_of,
    to_count,
    to_flag,
    to_int,
    to_text,
)
from .entities import EntityType, UnknownEntityTypeError, resolve_entity_type
from .outcomes import FailureReason, SourceError, SourceOk, SourceOutcome

Context = Mapping[str, Any]

HIGH_TURNOUT_THRESHOLD = 70.0
LOW_TURNOUT_RECOMMENDATION_THRESHOLD = 60.0
LARGE_BOOTH_ELECTORS = 900
RECOMMENDATION_LIMIT = 5

_STRATEGIES = {
    RecommendationCategory.HIGH_DENSITY_STRATEGIC: "Focus on voter mobilization due to high density",
    RecommendationCategory.LOW_TURNOUT_OPPORTUNITY: "Target low turnout areas with campaigning",
    RecommendationCategory.HIGHLY_COMPETITIVE: "Competitive area requiring strategic planning",
}


class PayloadShapeError(ValueError):
    """Upstream payload parsed but does not have the shape an entity needs."""


@dataclass(slots=True, frozen=True)
class Normalization:
    """Normalized fragment plus whether it was synthesized."""

    value: Any
    synthetic: bool = False
    reason: str | None = None


class _Fields:
    """Alias-aware accessor over one raw record.

    Each accessor takes the candidate keys in priority order and logs a
    ``coercion_default`` at debug level when a value is present but unusable.
    """

    __slots__ = ("raw", "label")

    def __init__(self, raw: Mapping[str, Any], label: str) -> None:
        self.raw = raw
        self.label = label

    def value(self, *keys: str) -> Any:
        for key in keys:
            candidate = self.raw.get(key)
            if candidate is not None and candidate != "":
                return candidate
        return None

    def note_default(self, keys: tuple[str, ...], raw_value: Any, default: Any) -> None:
        logger.debug(
            "coercion_default {}.{} value={!r} -> {!r}", self.label, keys[0], raw_value, default
        )

    def count(self, *keys: str, default: int = 0) -> int:
        raw_value = self.value(*keys)
        number = parse_number(raw_value)
        if number is None:
            if raw_value is not None:
                self.note_default(keys, raw_value, default)
            return default
        return to_count(number, default)

    def integer(self, *keys: str, default: int = 0) -> int:
        raw_value = self.value(*keys)
        if raw_value is not None and parse_number(raw_value) is None:
            self.note_default(keys, raw_value, default)
        return to_int(raw_value, default)

    def percentage(self, *keys: str, default: float = 0.0) -> float:
        raw_value = self.value(*keys)
        if raw_value is not None and parse_number(raw_value) is None:
            self.note_default(keys, raw_value, default)
        return clamp_percentage(raw_value, default)

    def text(self, *keys: str, default: str = "") -> str:
        return to_text(self.value(*keys), default)

    def optional_text(self, *keys: str) -> str | None:
        text = to_text(self.value(*keys))
        return text or None

    def flag(self, *keys: str, default: bool = False) -> bool:
        return to_flag(self.value(*keys), default)

    def mapping(self, *keys: str) -> Mapping[str, Any] | None:
        candidate = self.value(*keys)
        return candidate if isinstance(candidate, Mapping) else None

    def sequence(self, *keys: str) -> list[Any] | None:
        candidate = self.value(*keys)
        return candidate if isinstance(candidate, list) else None


def _require_mapping(payload: Any, *unwrap_keys: str) -> Mapping[str, Any]:
    if isinstance(payload, Mapping):
        for key in unwrap_keys:
            nested = payload.get(key)
            if isinstance(nested, Mapping):
                return nested
        return payload
    raise PayloadShapeError(f"expected an object, got {type(payload).__name__}")


def _require_list(payload: Any, *wrapper_keys: str) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key in wrapper_keys:
            nested = payload.get(key)
            if isinstance(nested, list):
                return nested
    raise PayloadShapeError(f"expected a list, got {type(payload).__name__}")


def _normalize_items(
    items: list[Any],
    context: Context,
    build: Callable[[Mapping[str, Any], int, Context], Any],
    fallback: Callable[[int, Context], Any],
    label: str,
) -> list[Any]:
    """Normalize element-wise; malformed elements become synthetic records in place."""

    normalized = []
    for index, item in enumerate(items):
        if isinstance(item, Mapping):
            normalized.append(build(item, index, context))
        else:
            logger.debug("coercion_default {}[{}] malformed element replaced", label, index)
            normalized.append(fallback(index, context))
    return normalized


def _bounded_turnout(fields: _Fields, votes_cast: int, electors: int) -> float:
    raw_value = fields.value("booth_turnout", "turnout_percentage", "turnout")
    if raw_value is None:
        derived = percentage_of(votes_cast, electors)
        return derived if 0.0 <= derived <= 100.0 else 0.0
    number = parse_number(raw_value)
    if number is None or not 0.0 <= number <= 100.0:
        fields.note_default(("turnout_percentage",), raw_value, 0.0)
        return 0.0
    return round(number, 2)


def _category(value: Any) -> ConstituencyCategory:
    text = to_text(value).upper()
    head = text.replace("(", " ").replace(")", " ").split()
    token = head[0] if head else ""
    if token == ConstituencyCategory.SCHEDULED_CASTE.value:
        return ConstituencyCategory.SCHEDULED_CASTE
    if token == ConstituencyCategory.SCHEDULED_TRIBE.value:
        return ConstituencyCategory.SCHEDULED_TRIBE
    return ConstituencyCategory.GENERAL


# ----------------------------------------------------------------------
# Element builders


def _region(raw: Mapping[str, Any], index: int, context: Context) -> Region:
    fields = _Fields(raw, "region")
    constituency_count = fields.value("total_assemblies", "assemblies", "constituency_count")
    return Region(
        region_id=fields.count("state_id", "id", default=index + 1),
        name=fields.text("state_name", "name", default=f"State {index + 1}"),
        capital=fields.optional_text("capital"),
        constituency_count=None if constituency_count is None else to_count(constituency_count),
    )


def _constituency(raw: Mapping[str, Any], index: int, context: Context) -> Constituency:
    fields = _Fields(raw, "constituency")
    constituency_id = fields.count(
        "constituency_id", "ac_id", "id", default=to_count(context.get("constituency_id"), index + 1)
    )
    return Constituency(
        constituency_id=constituency_id,
        name=fields.text("constituency_name", "ac_name", "name"),
        region_id=fields.count("state_id", default=to_count(context.get("state_id"))),
        district=fields.text("district", "district_name"),
        parliament_seat=fields.text("parliament_seat", "parliamentSeat", "pc_name"),
        category=_category(fields.value("category", "reserved_for")),
        elector_count=fields.count("total_voters", "total_electors", "electors"),
        booth_count=fields.count("polling_booths", "total_booths", "booth_count"),
        region_name=fields.text("state_name"),
    )


def _booth(raw: Mapping[str, Any], index: int, context: Context) -> Booth:
    fields = _Fields(raw, "booth")
    booth_id = fields.count("booth_id", "id", default=index + 1)
    electors = fields.count("total_electors", "total_voters", "electors")
    votes_cast = fields.count("total_votes_cast", "votes_cast", "total_votes")
    return Booth(
        booth_id=booth_id,
        number=fields.text("booth_number", "number", default=str(booth_id)),
        name=fields.text("booth_name", "name", "location"),
        constituency_id=fields.count(
            "constituency_id", "ac_id", default=to_count(context.get("constituency_id"))
        ),
        elector_count=electors,
        votes_cast=votes_cast,
        male_electors=fields.count("male_voters", "male_electors"),
        female_electors=fields.count("female_voters", "female_electors"),
        other_electors=fields.count("other_voters", "other_electors"),
        turnout_percentage=_bounded_turnout(fields, votes_cast, electors),
        winning_party=fields.optional_text("winning_party"),
        winning_votes=fields.count("winning_votes"),
    )


def _mla(raw: Mapping[str, Any], index: int, context: Context) -> HistoricalMLA:
    fields = _Fields(raw, "historical_mla")
    return HistoricalMLA(
        year=fields.integer("year", "election_year", default=to_int(context.get("year"))),
        name=fields.text("name", "mla_name", "candidate_name"),
        party_name=fields.text("party", "party_name"),
        is_winner=fields.flag("is_winner", "isWinner", "winner"),
    )


def _party_dominance(raw: Mapping[str, Any], index: int, context: Context) -> PartyDominance:
    fields = _Fields(raw, "party_dominance")
    return PartyDominance(
        party_name=fields.text("party_name", "party", default="Unknown"),
        booths_won=fields.count("booths_won"),
        total_votes=fields.count("total_votes", "votes"),
    )


def _cluster(raw: Mapping[str, Any], index: int, context: Context) -> BoothCluster:
    fields = _Fields(raw, "booth_cluster")
    return BoothCluster(
        cluster_type=fields.text("cluster_type", "type", default=f"Cluster_{index + 1}"),
        booth_count=fields.count("booth_count", "booths"),
        mean_electors=round(max(0.0, float(fields.count("avg_electors", "mean_electors"))), 2),
        mean_turnout=fields.percentage("avg_turnout", "mean_turnout"),
    )


def _turnout_point(raw: Mapping[str, Any], index: int, context: Context) -> TurnoutTrendPoint:
    fields = _Fields(raw, "turnout_trend")
    electors = fields.count("total_voters", "total_electors", "electors")
    votes_cast = fields.count("votes_cast", "total_votes_cast")
    if fields.value("turnout_percentage", "turnout") is None:
        turnout = min(100.0, percentage_of(votes_cast, electors))
    else:
        turnout = fields.percentage("turnout_percentage", "turnout")
    return TurnoutTrendPoint(
        year=fields.integer("year", "election_year"),
        turnout_percentage=turnout,
        elector_count=electors,
        votes_cast=votes_cast,
    )


def _party_key(name: Any) -> str:
    text = to_text(name, "UNKNOWN")
    return "_".join(text.split()).upper()


def _vote_share_point(raw: Mapping[str, Any], index: int, context: Context) -> VoteSharePoint:
    fields = _Fields(raw, "vote_share_trend")
    shares: dict[str, float] = {}
    parties = fields.sequence("parties")
    if parties is not None:
        for party in parties:
            if isinstance(party, Mapping):
                party_fields = _Fields(party, "vote_share_trend.party")
                shares[_party_key(party.get("party_name"))] = party_fields.percentage(
                    "vote_percentage", "percentage"
                )
    else:
        for key, value in raw.items():
            if key in {"year", "election_year"}:
                continue
            if parse_number(value) is not None:
                shares[_party_key(key)] = clamp_percentage(value)
    return VoteSharePoint(year=fields.integer("year", "election_year"), shares=shares)


def _recommendation_from_booth(booth: Booth) -> BoothRecommendation:
    if booth.elector_count > LARGE_BOOTH_ELECTORS:
        category = RecommendationCategory.HIGH_DENSITY_STRATEGIC
    elif booth.turnout_percentage < LOW_TURNOUT_RECOMMENDATION_THRESHOLD:
        category = RecommendationCategory.LOW_TURNOUT_OPPORTUNITY
    else:
        category = RecommendationCategory.HIGHLY_COMPETITIVE
    return BoothRecommendation(
        booth_id=booth.booth_id,
        booth_number=booth.number,
        booth_name=booth.name,
        elector_count=booth.elector_count,
        turnout_percentage=booth.turnout_percentage,
        winning_party=booth.winning_party,
        category=category,
        strategy=_STRATEGIES[category],
        synthetic=booth.synthetic,
    )


def _recommendation(raw: Mapping[str, Any], index: int, context: Context) -> BoothRecommendation:
    fields = _Fields(raw, "booth_recommendation")
    booth = _booth(raw, index, context)
    recommendation = _recommendation_from_booth(booth)
    category_value = to_text(fields.value("recommendation_category", "category")).lower()
    for category in RecommendationCategory:
        if category.value == category_value:
            recommendation.category = category
            recommendation.strategy = _STRATEGIES[category]
    strategy = fields.optional_text("strategy_suggestion", "strategy")
    if strategy:
        recommendation.strategy = strategy
    return recommendation


# ----------------------------------------------------------------------
# Entity normalizers


def normalize_regions(payload: Any, context: Context) -> list[Region]:
    items = _require_list(payload, "states", "regions")
    return _normalize_items(items, context, _region, fallbacks.region_element, "regions")


def normalize_region(payload: Any, context: Context) -> Region:
    raw = _require_mapping(payload, "state")
    if not raw:
        raise PayloadShapeError("empty state record")
    return _region(raw, to_count(context.get("state_id"), 1) - 1, context)


def normalize_constituencies(payload: Any, context: Context) -> list[Constituency]:
    items = _require_list(payload, "assemblies", "constituencies")
    return _normalize_items(
        items, context, _constituency, fallbacks.constituency_element, "constituencies"
    )


def normalize_constituency(payload: Any, context: Context) -> Constituency:
    raw = _require_mapping(payload, "constituency")
    fields = _Fields(raw, "constituency")
    if fields.value("constituency_id", "ac_id", "id", "constituency_name", "ac_name", "name") is None:
        raise PayloadShapeError("constituency record has neither identifier nor name")
    return _constituency(raw, 0, context)


def normalize_constituency_stats(payload: Any, context: Context) -> ConstituencyStats:
    raw = _require_mapping(payload, "stats")
    fields = _Fields(raw, "constituency_stats")
    year = to_int(context.get("year"), fallbacks.FALLBACK_YEAR)
    winner_raw = fields.mapping(f"winner_{year}", "winner")
    winner = _Fields(winner_raw or {}, "constituency_stats.winner")
    return ConstituencyStats(
        constituency_id=fields.count(
            "constituency_id", "ac_id", default=to_count(context.get("constituency_id"))
        ),
        name=fields.text("ac_name", "constituency_name", "name"),
        elector_count=fields.count("total_voters", "total_electors"),
        booth_count=fields.count("polling_booths", "total_booths"),
        turnout_percentage=fields.percentage(f"turnout_{year}", "turnout", "turnout_percentage"),
        winner_candidate=winner.optional_text("candidate_name", "name"),
        winner_party=winner.optional_text("party_name", "party"),
        winner_votes=winner.count("votes", "votes_secured"),
        winner_vote_percentage=winner.percentage("vote_percentage"),
        margin_votes=fields.count(f"margin_{year}", "margin"),
        margin_percentage=fields.percentage(f"margin_percentage_{year}", "margin_percentage"),
    )


def normalize_constituency_demographics(
    payload: Any, context: Context
) -> ConstituencyDemographics:
    raw = _require_mapping(payload, "demographics")
    fields = _Fields(raw, "constituency_demographics")
    caste = fields.mapping("caste_distribution")
    settlement = fields.mapping("urban_rural")
    gender = fields.mapping("gender_distribution")
    if caste is None and settlement is None and gender is None:
        raise PayloadShapeError("no demographic distribution present")
    caste_fields = _Fields(caste or {}, "constituency_demographics.caste")
    settlement_fields = _Fields(settlement or {}, "constituency_demographics.urban_rural")
    gender_fields = _Fields(gender or {}, "constituency_demographics.gender")
    return ConstituencyDemographics(
        scheduled_caste=caste_fields.percentage("sc"),
        scheduled_tribe=caste_fields.percentage("st"),
        other_backward_class=caste_fields.percentage("obc"),
        general=caste_fields.percentage("general"),
        urban=settlement_fields.percentage("urban"),
        rural=settlement_fields.percentage("rural"),
        male=gender_fields.percentage("male"),
        female=gender_fields.percentage("female"),
        other=gender_fields.percentage("other"),
    )


def _has_single_winner(ranks: list[int]) -> bool:
    return bool(ranks) and all(rank >= 1 for rank in ranks) and ranks.count(1) == 1


def _rank_contest(results: list[ElectionResult], rows: list[tuple[Any, ...]]) -> None:
    """Settle ranks and the winner's margin within one constituency/year."""

    if not _has_single_winner([result.rank for result in results]):
        order = sorted(range(len(results)), key=lambda position: -results[position].votes)
        for rank, position in enumerate(order, start=1):
            results[position].rank = rank

    winner_at = next((i for i, result in enumerate(results) if result.rank == 1), None)
    runner_up = next((result for result in results if result.rank == 2), None)
    if winner_at is None or runner_up is None:
        return
    winner = results[winner_at]
    _, _, raw_margin, raw_margin_pct, _ = rows[winner_at]
    if raw_margin is None:
        winner.margin_votes = max(0, winner.votes - runner_up.votes)
    if raw_margin_pct is None:
        winner.margin_percentage = clamp_percentage(
            winner.vote_percentage - runner_up.vote_percentage
        )


def normalize_election_results(payload: Any, context: Context) -> list[ElectionResult]:
    """Normalize candidate results, synthesizing ranks and the winning margin.

    Rows are grouped by constituency and year, since booth results may span
    several elections. Within each group, source ranks are kept only when
    every entry has one and exactly one entry is ranked first; otherwise
    ranks are re-derived from vote order. Vote shares are relative to the
    group total, and the winner's margin is computed against the runner-up
    when not supplied. Input order is preserved.
    """

    items = _require_list(payload, "results")
    constituency_id = to_count(context.get("constituency_id"))
    default_year = to_int(context.get("year"), fallbacks.FALLBACK_YEAR)

    rows: list[tuple[Any, ...]] = []
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            logger.debug("coercion_default election_results[{}] malformed element replaced", index)
            placeholder = fallbacks.result_element(index, context)
            rows.append((placeholder, None, None, None, True))
            continue
        fields = _Fields(item, "election_result")
        rows.append(
            (
                ElectionResult(
                    result_id=fields.count("result_id", "id", default=index + 1),
                    constituency_id=fields.count("constituency_id", default=constituency_id),
                    year=fields.integer("election_year", "year", default=default_year),
                    candidate_name=fields.text("candidate_name", "name"),
                    party_name=fields.text("party_name", "party"),
                    votes=fields.count("votes", "votes_secured"),
                    vote_percentage=0.0,
                    rank=fields.count("rank", "position"),
                ),
                fields.value("vote_percentage", "percentage"),
                fields.value("margin", "margin_votes"),
                fields.value("margin_percentage"),
                False,
            )
        )

    contests: dict[tuple[int, int], list[int]] = {}
    for position, row in enumerate(rows):
        record = row[0]
        contests.setdefault((record.constituency_id, record.year), []).append(position)

    results: list[ElectionResult] = []
    for record, _, raw_margin, raw_margin_pct, synthetic in rows:
        results.append(
            ElectionResult(
                result_id=record.result_id,
                constituency_id=record.constituency_id,
                year=record.year,
                candidate_name=record.candidate_name,
                party_name=record.party_name,
                votes=record.votes,
                vote_percentage=0.0,
                rank=record.rank,
                margin_votes=to_count(raw_margin),
                margin_percentage=clamp_percentage(raw_margin_pct),
                synthetic=synthetic,
            )
        )

    for positions in contests.values():
        total_votes = sum(results[position].votes for position in positions)
        for position in positions:
            raw_share = rows[position][1]
            if raw_share is None or parse_number(raw_share) is None:
                share = min(100.0, percentage_of(results[position].votes, total_votes))
            else:
                share = clamp_percentage(raw_share)
            results[position].vote_percentage = share
        _rank_contest(
            [results[position] for position in positions],
            [rows[position] for position in positions],
        )
    return results


def normalize_historical_mlas(payload: Any, context: Context) -> list[HistoricalMLA]:
    items = _require_list(payload, "mlas", "historical_mlas")
    return _normalize_items(items, context, _mla, fallbacks.mla_element, "historical_mlas")


def normalize_booths(payload: Any, context: Context) -> list[Booth]:
    items = _require_list(payload, "booths")
    return _normalize_items(items, context, _booth, fallbacks.booth_element, "booths")


def normalize_booth(payload: Any, context: Context) -> Booth:
    """Booth record, plus the results list when upstream sends ``{booth, results}``."""

    raw = _require_mapping(payload, "booth")
    if not raw:
        raise PayloadShapeError("empty booth record")
    booth_id = to_count(context.get("booth_id"), 1)
    booth = _booth(raw, booth_id - 1, context)
    embedded = payload.get("results")
    if not isinstance(embedded, list):
        embedded = _Fields(raw, "booth").sequence("results")
    if embedded:
        booth.results = normalize_election_results(
            embedded, {**context, "constituency_id": booth.constituency_id}
        )
    return booth


def _derive_insights(booths: list[Booth]) -> BoothInsights:
    high = sum(1 for booth in booths if booth.turnout_percentage >= HIGH_TURNOUT_THRESHOLD)
    return BoothInsights(
        high_turnout_booths=high,
        low_turnout_booths=len(booths) - high,
        large_booths=sum(1 for booth in booths if booth.elector_count > LARGE_BOOTH_ELECTORS),
        booths_analyzed=len(booths),
    )


def normalize_booth_analysis(payload: Any, context: Context) -> BoothAnalysis:
    raw = _require_mapping(payload)
    fields = _Fields(raw, "booth_analysis")
    summary_raw = fields.mapping("summary")
    booth_items = fields.sequence("booths")
    if summary_raw is None and booth_items is None:
        raise PayloadShapeError("booth analysis carries neither summary nor booths")

    booths = (
        _normalize_items(booth_items, context, _booth, fallbacks.booth_element, "booth_analysis.booths")
        if booth_items is not None
        else []
    )
    summary = _Fields(summary_raw or {}, "booth_analysis.summary")
    if summary.value("avg_turnout", "mean_turnout") is None:
        mean_turnout = mean(booth.turnout_percentage for booth in booths)
    else:
        mean_turnout = summary.percentage("avg_turnout", "mean_turnout")

    dominance_items = fields.sequence("party_dominance") or []
    insights_raw = fields.mapping("insights")
    if insights_raw is None:
        insights = _derive_insights(booths)
    else:
        insights_fields = _Fields(insights_raw, "booth_analysis.insights")
        insights = BoothInsights(
            high_turnout_booths=insights_fields.count("high_turnout_booths"),
            low_turnout_booths=insights_fields.count("low_turnout_booths"),
            large_booths=insights_fields.count("large_booths"),
            booths_analyzed=insights_fields.count("total_booths_analyzed", default=len(booths)),
        )

    return BoothAnalysis(
        constituency_id=to_count(context.get("constituency_id")),
        summary=BoothAnalysisSummary(
            constituency_name=summary.text("ac_name", "constituency_name"),
            booth_count=summary.count("total_booths", default=len(booths)),
            elector_count=summary.count(
                "total_electors", default=sum(booth.elector_count for booth in booths)
            ),
            votes_cast=summary.count(
                "total_votes_cast", default=sum(booth.votes_cast for booth in booths)
            ),
            mean_turnout=mean_turnout,
        ),
        booths=booths,
        party_dominance=_normalize_items(
            dominance_items,
            context,
            _party_dominance,
            fallbacks.party_dominance_element,
            "booth_analysis.party_dominance",
        ),
        insights=insights,
    )


def normalize_booth_clusters(payload: Any, context: Context) -> ClusterReport:
    raw = _require_mapping(payload)
    fields = _Fields(raw, "booth_clusters")
    items = fields.sequence("clusters")
    if items is None:
        raise PayloadShapeError("cluster payload has no cluster list")
    clusters = _normalize_items(items, context, _cluster, fallbacks.cluster_element, "booth_clusters")
    return ClusterReport(
        clusters=clusters,
        total_clusters=fields.count("total_clusters", default=len(clusters)),
        total_booths=fields.count(
            "total_booths", default=sum(cluster.booth_count for cluster in clusters)
        ),
    )


def normalize_booth_recommendations(payload: Any, context: Context) -> list[BoothRecommendation]:
    """Use upstream recommendations when sent, else derive them from the analysed booths."""

    raw = _require_mapping(payload)
    fields = _Fields(raw, "booth_recommendations")
    supplied = fields.sequence("recommendations")
    if supplied is not None:
        return _normalize_items(
            supplied,
            context,
            _recommendation,
            fallbacks.recommendation_element,
            "booth_recommendations",
        )
    booth_items = fields.sequence("booths")
    if booth_items is None:
        raise PayloadShapeError("no booths to derive recommendations from")
    booths = _normalize_items(
        booth_items[:RECOMMENDATION_LIMIT],
        context,
        _booth,
        fallbacks.booth_element,
        "booth_recommendations.booths",
    )
    return [_recommendation_from_booth(booth) for booth in booths]


def normalize_booth_demographics(payload: Any, context: Context) -> DemographicInsights:
    raw = _require_mapping(payload)
    fields = _Fields(raw, "booth_demographics")
    insights_raw = fields.mapping("insights")
    per_booth = fields.sequence("demographics")
    if insights_raw is None and per_booth is None:
        raise PayloadShapeError("demographics payload has neither insights nor booth rows")

    booth_rows = [_Fields(row, "booth_demographics.row") for row in per_booth or [] if isinstance(row, Mapping)]
    insights = _Fields(insights_raw or {}, "booth_demographics.insights")
    electors = insights.count(
        "total_electors",
        default=sum(row.count("total_electors", "total_voters") for row in booth_rows),
    )
    male = insights.count(
        "male_electors", default=sum(row.count("male_voters", "male_electors") for row in booth_rows)
    )
    female = insights.count(
        "female_electors",
        default=sum(row.count("female_voters", "female_electors") for row in booth_rows),
    )
    clusters = _Fields(insights.mapping("demographic_clusters") or {}, "booth_demographics.clusters")
    return DemographicInsights(
        elector_count=electors,
        male_electors=male,
        female_electors=female,
        mean_male_percentage=insights.percentage(
            "avg_male_percentage", default=percentage_of(male, electors)
        ),
        mean_female_percentage=insights.percentage(
            "avg_female_percentage", default=percentage_of(female, electors)
        ),
        male_dominated_booths=clusters.count("male_dominated"),
        female_dominated_booths=clusters.count("female_dominated"),
        balanced_booths=clusters.count("balanced"),
    )


def summarize_comparison(booths: list[Booth]) -> ComparisonSummary:
    """Totals and mean turnout across every compared booth (none excluded)."""

    return ComparisonSummary(
        booth_count=len(booths),
        elector_total=sum(booth.elector_count for booth in booths),
        votes_total=sum(booth.votes_cast for booth in booths),
        mean_turnout=mean(booth.turnout_percentage for booth in booths),
    )


def normalize_booth_comparison(payload: Any, context: Context) -> ComparisonSet:
    items = _require_list(payload, "booths")
    booths = _normalize_items(items, context, _booth, fallbacks.booth_element, "booth_comparison")
    requested = tuple(to_count(value) for value in context.get("boothIds") or ())
    if requested:
        position = {booth_id: index for index, booth_id in enumerate(requested)}
        booths.sort(key=lambda booth: position.get(booth.booth_id, len(position)))
    booth_ids = requested or tuple(booth.booth_id for booth in booths)
    return ComparisonSet(booth_ids=booth_ids, booths=booths, summary=summarize_comparison(booths))


def normalize_turnout_trend(payload: Any, context: Context) -> list[TurnoutTrendPoint]:
    items = _require_list(payload, "trend")
    return _normalize_items(
        items, context, _turnout_point, fallbacks.turnout_point_element, "turnout_trend"
    )


def normalize_vote_share_trend(payload: Any, context: Context) -> list[VoteSharePoint]:
    items = _require_list(payload, "trend")
    return _normalize_items(
        items, context, _vote_share_point, fallbacks.vote_share_element, "vote_share_trend"
    )


Normalizer = Callable[[Any, Context], Any]

NORMALIZERS: dict[EntityType, Normalizer] = {
    EntityType.REGIONS: normalize_regions,
    EntityType.REGION: normalize_region,
    EntityType.CONSTITUENCIES: normalize_constituencies,
    EntityType.CONSTITUENCY: normalize_constituency,
    EntityType.CONSTITUENCY_STATS: normalize_constituency_stats,
    EntityType.CONSTITUENCY_DEMOGRAPHICS: normalize_constituency_demographics,
    EntityType.ELECTION_RESULTS: normalize_election_results,
    EntityType.HISTORICAL_MLAS: normalize_historical_mlas,
    EntityType.BOOTHS: normalize_booths,
    EntityType.BOOTH: normalize_booth,
    EntityType.BOOTH_ANALYSIS: normalize_booth_analysis,
    EntityType.BOOTH_CLUSTERS: normalize_booth_clusters,
    EntityType.BOOTH_RECOMMENDATIONS: normalize_booth_recommendations,
    EntityType.BOOTH_DEMOGRAPHICS: normalize_booth_demographics,
    EntityType.BOOTH_COMPARISON: normalize_booth_comparison,
    EntityType.TURNOUT_TREND: normalize_turnout_trend,
    EntityType.VOTE_SHARE_TREND: normalize_vote_share_trend,
}

_unregistered = set(EntityType) - set(NORMALIZERS)
if _unregistered:  # pragma: no cover - import-time registry check
    raise RuntimeError(f"Normalizers missing for: {sorted(item.value for item in _unregistered)}")


def normalize_outcome(
    entity_type: EntityType | str,
    outcome: SourceOutcome,
    context: Context | None = None,
) -> Normalization:
    """Turn one settled upstream outcome into a canonical fragment.

    Upstream failures and unusable payloads are absorbed here and replaced by
    the entity's fallback. An unknown entity type is a caller bug and raises
    :class:`UnknownEntityTypeError`.
    """

    entity = resolve_entity_type(entity_type)
    context = context or {}
    normalizer = NORMALIZERS.get(entity)
    if normalizer is None:  # pragma: no cover - guarded by the import-time check
        raise UnknownEntityTypeError(f"No normalizer registered for '{entity.value}'")

    if isinstance(outcome, SourceError):
        return Normalization(
            value=fallbacks.build_fallback(entity, context),
            synthetic=True,
            reason=outcome.reason.value,
        )
    if not isinstance(outcome, SourceOk):
        raise TypeError(f"Unsupported source outcome: {type(outcome).__name__}")

    try:
        value = normalizer(outcome.payload, context)
    except PayloadShapeError as exc:
        logger.warning("Payload for {} rejected ({}); using fallback", entity.value, exc)
        return Normalization(
            value=fallbacks.build_fallback(entity, context),
            synthetic=True,
            reason=FailureReason.SHAPE_ERROR.value,
        )
    return Normalization(value=value)


def normalize(
    entity_type: EntityType | str,
    outcome: SourceOutcome,
    context: Context | None = None,
) -> Any:
    return normalize_outcome(entity_type, outcome, context).value
