"""
Condition Assessment Consumption

Turns per-photo condition assessments into property-level condition
scores, a repair category, an auto-estimated repair budget, and the
room-by-room condition adjustment applied to comp prices.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final, List, Optional, Sequence

from deal_engine.comp_engine.models import (
    DEFAULT_CONDITION_RATING,
    MAX_ESTIMATED_REPAIRS,
    ConditionCategory,
    ConditionScores,
    ImageAnalysis,
)
from deal_engine.comp_engine.valuation import clamp_condition_adjustment


logger = logging.getLogger(__name__)


# =============================================================================
# Room Types
# =============================================================================

INTERIOR_ROOM_TYPES: Final[frozenset[str]] = frozenset({
    "kitchen", "bedroom", "bathroom", "living-room", "basement", "interior",
})
EXTERIOR_ROOM_TYPES: Final[frozenset[str]] = frozenset({
    "exterior-front", "exterior-back", "roof", "backyard", "garage",
})

# Room types compared like-for-like between subject and comp photos
COMPARABLE_ROOM_TYPES: Final[tuple[str, ...]] = (
    "kitchen",
    "bathroom",
    "bedroom",
    "living-room",
    "exterior-front",
    "exterior-back",
    "basement",
    "garage",
    "backyard",
    "roof",
)

# Boolean damage signals, each counted once per photo
DAMAGE_SIGNALS: Final[frozenset[str]] = frozenset({
    "water-damage",
    "mold",
    "cracks",
    "broken-windows",
    "missing-shingles",
    "foundation-cracks",
    "yard-neglect",
})


# =============================================================================
# Configuration Constants
# =============================================================================

NEUTRAL_ROOM_SCORE = 3.0
DEFAULT_PHOTO_CONFIDENCE = 50.0

RENOVATION_POINTS_PER_INDICATOR = 10
DAMAGE_POINTS_PER_SIGNAL = 15

# Per-point (1-5 scale) condition difference adjustment
ADJUSTMENT_PER_CONDITION_POINT = 0.03

# Repair budget as a fraction of ARV
REPAIR_PERCENT_BY_CATEGORY: Final[dict[ConditionCategory, float]] = {
    ConditionCategory.LIGHT: 0.05,
    ConditionCategory.MEDIUM: 0.12,
    ConditionCategory.HEAVY: 0.25,
}
HIGH_DAMAGE_RISK = 60
HIGH_DAMAGE_MIN_REPAIR_PERCENT = 0.30


# =============================================================================
# Aggregation
# =============================================================================


def _weighted_room_average(analyses: Sequence[ImageAnalysis], room_types: frozenset[str]) -> float:
    """Confidence-weighted mean condition; low-confidence photos still weigh 0.5."""
    total = 0.0
    total_weight = 0.0
    for analysis in analyses:
        if analysis.room_type not in room_types or not analysis.condition_score:
            continue
        confidence = analysis.confidence or DEFAULT_PHOTO_CONFIDENCE
        weight = 0.5 + 0.5 * (confidence / 100)
        total += analysis.condition_score * weight
        total_weight += weight
    return total / total_weight if total_weight > 0 else NEUTRAL_ROOM_SCORE


def _unique(values: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(values))


def aggregate_image_analyses(analyses: Sequence[ImageAnalysis]) -> ConditionScores:
    """
    Aggregate per-photo assessments into property-level scores.

    Args:
        analyses: Photo assessments for one property

    Returns:
        ConditionScores; neutral defaults when there are no photos
    """
    if not analyses:
        return ConditionScores()

    interior = _weighted_room_average(analyses, INTERIOR_ROOM_TYPES)
    exterior = _weighted_room_average(analyses, EXTERIOR_ROOM_TYPES)
    # 1-5 room scale to 1-10 overall scale
    overall = (interior + exterior) / 2 * 2

    indicators = [i for a in analyses for i in a.renovation_indicators]
    renovation_score = min(len(indicators) * RENOVATION_POINTS_PER_INDICATOR, 100)

    damage_count = sum(len(set(a.damage_signals) & DAMAGE_SIGNALS) for a in analyses)
    damage_risk = min(damage_count * DAMAGE_POINTS_PER_SIGNAL, 100)

    confidence = sum(a.confidence or 0 for a in analyses) / len(analyses)

    scores = ConditionScores(
        interior_score=round(interior, 1),
        exterior_score=round(exterior, 1),
        overall_score=round(overall, 1),
        renovation_score=float(renovation_score),
        damage_risk_score=float(damage_risk),
        image_confidence=float(round(confidence)),
        renovation_indicators=_unique(indicators),
        damage_flags=_unique([f for a in analyses for f in a.damage_flags]),
    )
    scores.condition_category = determine_condition_category(0, None, scores)
    return scores


def condition_rating(scores: Optional[ConditionScores]) -> float:
    """Map a 1-10 overall condition score to the 1-5 comp rating."""
    if scores is None or not scores.overall_score:
        return DEFAULT_CONDITION_RATING
    return float(max(1, min(5, int(scores.overall_score / 2 + 0.5))))


# =============================================================================
# Repairs
# =============================================================================


def determine_condition_category(
    estimated_repairs: float,
    arv: Optional[float],
    scores: Optional[ConditionScores] = None,
) -> ConditionCategory:
    """
    Classify repair needs.

    Photo evidence is used first (damage risk, overall condition); the
    repair-to-ARV ratio decides otherwise. Without either, MEDIUM.
    """
    if scores is not None:
        overall = scores.overall_score or 5
        damage = scores.damage_risk_score or 0

        if damage > HIGH_DAMAGE_RISK or overall < 4:
            return ConditionCategory.HEAVY

        if arv and arv > 0:
            repair_percent = estimated_repairs / arv * 100
            if repair_percent >= 25:
                return ConditionCategory.HEAVY
            if repair_percent >= 10:
                return ConditionCategory.MEDIUM

        if overall < 6 and damage > 30:
            return ConditionCategory.MEDIUM
        if overall >= 6 and damage < 30:
            return ConditionCategory.LIGHT

    if not arv or arv <= 0:
        return ConditionCategory.MEDIUM

    repair_percent = estimated_repairs / arv * 100
    if repair_percent < 10:
        return ConditionCategory.LIGHT
    if repair_percent < 25:
        return ConditionCategory.MEDIUM
    return ConditionCategory.HEAVY


def estimate_repairs_from_condition(
    arv: Optional[float],
    scores: Optional[ConditionScores],
) -> Optional[int]:
    """
    Estimate a repair budget from condition scores.

    5% of ARV for light, 12% for medium, 25% for heavy repairs; at least
    30% when damage risk exceeds 60. Capped at the largest repair budget
    ValuationInputs accepts.

    Returns:
        Whole-unit repair estimate, or None without ARV or scores
    """
    if not arv or scores is None:
        return None

    percent = REPAIR_PERCENT_BY_CATEGORY.get(scores.condition_category, 0.12)
    if (scores.damage_risk_score or 0) > HIGH_DAMAGE_RISK:
        percent = max(percent, HIGH_DAMAGE_MIN_REPAIR_PERCENT)

    return int(min(arv * percent, MAX_ESTIMATED_REPAIRS) + 0.5)


# =============================================================================
# Room-type Comparison
# =============================================================================


@dataclass
class RoomComparison:
    """Condition difference between subject and comp photos of one room type."""
    room_type: str
    subject_condition: float
    comp_condition: float
    confidence: float
    adjustment_percent: float

    @property
    def condition_difference(self) -> float:
        """Positive when the comp is in better condition."""
        return self.comp_condition - self.subject_condition


def _best_photo(analyses: List[ImageAnalysis]) -> ImageAnalysis:
    best = analyses[0]
    for analysis in analyses[1:]:
        if (analysis.confidence or 0) > (best.confidence or 0):
            best = analysis
    return best


def align_room_types(
    subject_analyses: Sequence[ImageAnalysis],
    comp_analyses: Sequence[ImageAnalysis],
) -> List[RoomComparison]:
    """
    Pair subject and comp photos by room type.

    For each room type present on both sides the most confident photo of
    each is compared. Each point of difference (1-5 scale) is worth 3%,
    weighted by the pair's average confidence.
    """
    comparisons = []
    for room_type in COMPARABLE_ROOM_TYPES:
        subject_photos = [a for a in subject_analyses if a.room_type == room_type]
        comp_photos = [a for a in comp_analyses if a.room_type == room_type]
        if not subject_photos or not comp_photos:
            continue

        best_subject = _best_photo(subject_photos)
        best_comp = _best_photo(comp_photos)

        subject_score = best_subject.condition_score or NEUTRAL_ROOM_SCORE
        comp_score = best_comp.condition_score or NEUTRAL_ROOM_SCORE
        confidence = (
            (best_subject.confidence or DEFAULT_PHOTO_CONFIDENCE)
            + (best_comp.confidence or DEFAULT_PHOTO_CONFIDENCE)
        ) / 2

        comparisons.append(RoomComparison(
            room_type=room_type,
            subject_condition=subject_score,
            comp_condition=comp_score,
            confidence=confidence,
            adjustment_percent=(
                (comp_score - subject_score) * ADJUSTMENT_PER_CONDITION_POINT * (confidence / 100)
            ),
        ))

    return comparisons


def room_condition_adjustment(comparisons: Sequence[RoomComparison]) -> float:
    """
    Confidence-weighted mean room adjustment, clamped to +/-15%.

    Returns 0.0 when no rooms could be compared.
    """
    total = 0.0
    total_weight = 0.0
    for comparison in comparisons:
        weight = (comparison.confidence or DEFAULT_PHOTO_CONFIDENCE) / 100
        total += comparison.adjustment_percent * weight
        total_weight += weight

    if total_weight <= 0:
        return 0.0
    adjustment = clamp_condition_adjustment(total / total_weight)
    logger.debug(
        "Room-type comparison: %d rooms, adjustment %.2f%%",
        len(comparisons), adjustment * 100,
    )
    return adjustment
