"""
Comp Engine

Comparable-sales valuation pipeline: search parameters, attribute
filtering, comp scoring, ARV, MAO, Deal Score and recommendation.

All stages are pure functions over explicit inputs and are safe to
re-run on recalculation requests.
"""

from .models import (
    AreaType,
    PropertyCategory,
    ListingStatus,
    DataSource,
    ConditionCategory,
    Recommendation,
    MaoRule,
    ArvMethod,
    ImageAnalysis,
    ConditionScores,
    SubjectProperty,
    ComparableSale,
    MatchingCriteria,
    SearchParams,
    ValuationInputs,
    MAOResult,
    DealScore,
    RecommendationResult,
    AnalysisResult,
    normalise_property_type,
)
from .search import (
    SearchExpansion,
    SearchOutcome,
    SearchStep,
    build_search_params,
    classify_area,
)
from .filters import AttributeMatchFilter, filter_eligible, haversine_distance
from .scoring import CompScorer, score_comps
from .valuation import ARVEstimate, ARVEstimator, estimate_arv
from .offer import calculate_mao, validate_mao_inputs
from .deal_score import DealContext, DealScoreComposer, compose_deal_score, neighborhood_proxy
from .recommendation import recommend

__all__ = [
    # Models
    "AreaType",
    "PropertyCategory",
    "ListingStatus",
    "DataSource",
    "ConditionCategory",
    "Recommendation",
    "MaoRule",
    "ArvMethod",
    "ImageAnalysis",
    "ConditionScores",
    "SubjectProperty",
    "ComparableSale",
    "MatchingCriteria",
    "SearchParams",
    "ValuationInputs",
    "MAOResult",
    "DealScore",
    "RecommendationResult",
    "AnalysisResult",
    "normalise_property_type",
    # Search
    "SearchExpansion",
    "SearchOutcome",
    "SearchStep",
    "build_search_params",
    "classify_area",
    # Engine
    "AttributeMatchFilter",
    "filter_eligible",
    "haversine_distance",
    "CompScorer",
    "score_comps",
    "ARVEstimate",
    "ARVEstimator",
    "estimate_arv",
    "calculate_mao",
    "validate_mao_inputs",
    "DealContext",
    "DealScoreComposer",
    "compose_deal_score",
    "neighborhood_proxy",
    "recommend",
]

__version__ = "1.0"
