"""
Recommendation Mapper

Maps a Deal Score to one of four outcomes. A pure function of the score:
no history, no hysteresis.
"""

from __future__ import annotations

from typing import Final, Union

from .models import DealScore, Recommendation, RecommendationResult


# (minimum score, recommendation), checked highest first
RECOMMENDATION_THRESHOLDS: Final[tuple[tuple[float, Recommendation], ...]] = (
    (80.0, Recommendation.STRONG_DEAL),
    (60.0, Recommendation.GOOD_NEGOTIATE),
    (40.0, Recommendation.WEAK_LOWBALL),
)

RECOMMENDATION_REASONS: Final[dict[Recommendation, str]] = {
    Recommendation.STRONG_DEAL: (
        "Excellent spread and low repair costs. Strong comps support this valuation."
    ),
    Recommendation.GOOD_NEGOTIATE: "Good potential deal. Consider negotiating price or terms.",
    Recommendation.WEAK_LOWBALL: "Weak deal metrics. Only proceed with aggressive lowball offer.",
    Recommendation.PASS: "Deal metrics do not meet investment criteria. Recommend passing.",
}


def recommend(deal_score: Union[DealScore, float]) -> RecommendationResult:
    """
    Map a Deal Score to a recommendation and rationale.

    Args:
        deal_score: DealScore or the composite score itself

    Returns:
        RecommendationResult
    """
    score = deal_score.deal_score if isinstance(deal_score, DealScore) else float(deal_score)

    recommendation = Recommendation.PASS
    for threshold, candidate in RECOMMENDATION_THRESHOLDS:
        if score >= threshold:
            recommendation = candidate
            break

    return RecommendationResult(
        recommendation=recommendation,
        reason=RECOMMENDATION_REASONS[recommendation],
    )
