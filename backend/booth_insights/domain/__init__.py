"""Domain models representing normalized electoral data."""

from .models import (
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

__all__ = [
    "Booth",
    "BoothAnalysis",
    "BoothAnalysisSummary",
    "BoothCluster",
    "BoothInsights",
    "BoothRecommendation",
    "ClusterReport",
    "ComparisonSet",
    "ComparisonSummary",
    "Constituency",
    "ConstituencyCategory",
    "ConstituencyDemographics",
    "ConstituencyStats",
    "DemographicInsights",
    "ElectionResult",
    "HistoricalMLA",
    "PartyDominance",
    "RecommendationCategory",
    "Region",
    "TurnoutTrendPoint",
    "VoteSharePoint",
]
