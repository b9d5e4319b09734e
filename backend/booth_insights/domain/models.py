"""Canonical records produced by normalization and consumed by views.

Every numeric attribute holds a real ``int``/``float``; percentages lie in
[0, 100]. Records synthesized in place of unusable upstream data carry
``synthetic=True``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ConstituencyCategory(str, Enum):
    GENERAL = "GEN"
    SCHEDULED_CASTE = "SC"
    SCHEDULED_TRIBE = "ST"


class RecommendationCategory(str, Enum):
    HIGH_DENSITY_STRATEGIC = "high_density_strategic"
    LOW_TURNOUT_OPPORTUNITY = "low_turnout_opportunity"
    HIGHLY_COMPETITIVE = "highly_competitive"


@dataclass(slots=True)
class Region:
    """A state; fixed for the session once loaded."""

    region_id: int
    name: str
    capital: str | None = None
    constituency_count: int | None = None
    synthetic: bool = False


@dataclass(slots=True)
class Constituency:
    constituency_id: int
    name: str
    region_id: int
    district: str
    parliament_seat: str
    category: ConstituencyCategory
    elector_count: int
    booth_count: int
    region_name: str = ""
    synthetic: bool = False


@dataclass(slots=True)
class Booth:
    """Polling booth; ``number`` stays a string because some are alphanumeric.

    ``results`` holds the candidate results the booth-details endpoint embeds
    alongside the booth record; it is empty for booths read from lists.
    """

    booth_id: int
    number: str
    name: str
    constituency_id: int
    elector_count: int
    votes_cast: int
    male_electors: int
    female_electors: int
    other_electors: int
    turnout_percentage: float
    winning_party: str | None = None
    winning_votes: int = 0
    results: list[ElectionResult] = field(default_factory=list)
    synthetic: bool = False


@dataclass(slots=True)
class ElectionResult:
    result_id: int
    constituency_id: int
    year: int
    candidate_name: str
    party_name: str
    votes: int
    vote_percentage: float
    rank: int
    margin_votes: int = 0
    margin_percentage: float = 0.0
    synthetic: bool = False


@dataclass(slots=True)
class HistoricalMLA:
    year: int
    name: str
    party_name: str
    is_winner: bool
    synthetic: bool = False


@dataclass(slots=True)
class ConstituencyStats:
    constituency_id: int
    name: str
    elector_count: int
    booth_count: int
    turnout_percentage: float
    winner_candidate: str | None
    winner_party: str | None
    winner_votes: int
    winner_vote_percentage: float
    margin_votes: int
    margin_percentage: float
    synthetic: bool = False


@dataclass(slots=True)
class ConstituencyDemographics:
    """Population shares (percent) by caste, settlement type and gender."""

    scheduled_caste: float
    scheduled_tribe: float
    other_backward_class: float
    general: float
    urban: float
    rural: float
    male: float
    female: float
    other: float
    synthetic: bool = False


@dataclass(slots=True)
class PartyDominance:
    party_name: str
    booths_won: int
    total_votes: int


@dataclass(slots=True)
class BoothAnalysisSummary:
    constituency_name: str
    booth_count: int
    elector_count: int
    votes_cast: int
    mean_turnout: float


@dataclass(slots=True)
class BoothInsights:
    high_turnout_booths: int
    low_turnout_booths: int
    large_booths: int
    booths_analyzed: int


@dataclass(slots=True)
class BoothAnalysis:
    """Constituency-wide booth analysis; embeds the booth list when upstream sends it."""

    constituency_id: int
    summary: BoothAnalysisSummary
    booths: list[Booth] = field(default_factory=list)
    party_dominance: list[PartyDominance] = field(default_factory=list)
    insights: BoothInsights | None = None
    synthetic: bool = False


@dataclass(slots=True)
class BoothCluster:
    cluster_type: str
    booth_count: int
    mean_electors: float
    mean_turnout: float
    synthetic: bool = False


@dataclass(slots=True)
class ClusterReport:
    clusters: list[BoothCluster]
    total_clusters: int
    total_booths: int
    synthetic: bool = False


@dataclass(slots=True)
class BoothRecommendation:
    booth_id: int
    booth_number: str
    booth_name: str
    elector_count: int
    turnout_percentage: float
    winning_party: str | None
    category: RecommendationCategory
    strategy: str
    synthetic: bool = False


@dataclass(slots=True)
class DemographicInsights:
    """Gender segmentation of electors across a constituency's booths."""

    elector_count: int
    male_electors: int
    female_electors: int
    mean_male_percentage: float
    mean_female_percentage: float
    male_dominated_booths: int
    female_dominated_booths: int
    balanced_booths: int
    synthetic: bool = False


@dataclass(slots=True)
class TurnoutTrendPoint:
    year: int
    turnout_percentage: float
    elector_count: int
    votes_cast: int
    synthetic: bool = False


@dataclass(slots=True)
class VoteSharePoint:
    year: int
    shares: dict[str, float] = field(default_factory=dict)
    synthetic: bool = False


@dataclass(slots=True)
class ComparisonSummary:
    booth_count: int
    elector_total: int
    votes_total: int
    mean_turnout: float


@dataclass(slots=True)
class ComparisonSet:
    """Ordered booths selected for side-by-side comparison.

    The summary is always recomputed from ``booths``; an upstream summary is
    never trusted.
    """

    booth_ids: tuple[int, ...]
    booths: list[Booth]
    summary: ComparisonSummary
    synthetic: bool = False
