"""
Deal Engine - Comparable-Sales Valuation

Values a residential subject property from recent nearby sales:
1. Search parameters (area-dependent radius and time window)
2. Attribute matching and comp scoring
3. ARV (size/condition adjusted, outliers removed)
4. MAO from cost assumptions and the offer rule
5. Deal Score and recommendation
"""

# Comp Engine - pure valuation stages
from .comp_engine import (
    AreaType,
    PropertyCategory,
    ConditionCategory,
    Recommendation,
    MaoRule,
    ImageAnalysis,
    ConditionScores,
    SubjectProperty,
    ComparableSale,
    SearchParams,
    ValuationInputs,
    MAOResult,
    DealScore,
    AnalysisResult,
    build_search_params,
    filter_eligible,
    score_comps,
    estimate_arv,
    calculate_mao,
    validate_mao_inputs,
    compose_deal_score,
    recommend,
)

# Condition assessment consumption
from .condition import aggregate_image_analyses, estimate_repairs_from_condition

# Deal Analyzer - Integrated Comp Engine Pipeline
from .deal_analyzer import CompSearchResult, DealAnalyzer

# Storage
from .repository import (
    AnalysisRepository,
    ComparableRepository,
    get_analysis_repository,
    get_comparable_repository,
)

from .errors import AnalysisNotFoundError, ComparableNotFoundError, ValidationError

__all__ = [
    # Comp Engine
    "AreaType",
    "PropertyCategory",
    "ConditionCategory",
    "Recommendation",
    "MaoRule",
    "ImageAnalysis",
    "ConditionScores",
    "SubjectProperty",
    "ComparableSale",
    "SearchParams",
    "ValuationInputs",
    "MAOResult",
    "DealScore",
    "AnalysisResult",
    "build_search_params",
    "filter_eligible",
    "score_comps",
    "estimate_arv",
    "calculate_mao",
    "validate_mao_inputs",
    "compose_deal_score",
    "recommend",
    # Condition
    "aggregate_image_analyses",
    "estimate_repairs_from_condition",
    # Deal Analyzer
    "CompSearchResult",
    "DealAnalyzer",
    # Storage
    "AnalysisRepository",
    "ComparableRepository",
    "get_analysis_repository",
    "get_comparable_repository",
    # Errors
    "AnalysisNotFoundError",
    "ComparableNotFoundError",
    "ValidationError",
]
