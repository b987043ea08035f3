"""
Tests for condition assessment consumption.

Verifies:
- Photo assessments aggregate into property-level scores and a category
- Overall score maps to the 1-5 comp rating
- Repair auto-estimate percentages
- Room-type alignment and the resulting comp condition adjustment
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from deal_engine.comp_engine import (
    ConditionCategory,
    ConditionScores,
    ImageAnalysis,
    ValuationInputs,
)
from deal_engine.comp_engine.models import MAX_ESTIMATED_REPAIRS
from deal_engine.condition import (
    aggregate_image_analyses,
    align_room_types,
    condition_rating,
    determine_condition_category,
    estimate_repairs_from_condition,
    room_condition_adjustment,
)


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def photo():
    """Factory fixture for photo assessments."""
    def _photo(room_type="kitchen", score=4.0, confidence=100.0, **kwargs) -> ImageAnalysis:
        return ImageAnalysis(
            room_type=room_type,
            condition_score=score,
            confidence=confidence,
            **kwargs,
        )
    return _photo


# =============================================================================
# Test: Aggregation
# =============================================================================

class TestAggregation:
    """Tests for aggregate_image_analyses."""

    def test_interior_exterior_and_overall(self, photo):
        scores = aggregate_image_analyses([
            photo("kitchen", 4.0),
            photo("exterior-front", 5.0),
        ])

        assert scores.interior_score == 4.0
        assert scores.exterior_score == 5.0
        assert scores.overall_score == 9.0
        assert scores.image_confidence == 100.0
        assert scores.condition_category == ConditionCategory.LIGHT

    def test_confidence_weighting(self, photo):
        scores = aggregate_image_analyses([
            photo("kitchen", 4.0, confidence=100),
            photo("bathroom", 2.0, confidence=0.0001),
        ])
        # weights 1.0 and ~0.5
        assert scores.interior_score == pytest.approx(3.3, abs=0.05)

    def test_missing_side_is_neutral(self, photo):
        scores = aggregate_image_analyses([photo("kitchen", 5.0)])
        assert scores.exterior_score == 3.0
        assert scores.overall_score == 8.0

    def test_renovation_and_damage(self, photo):
        scores = aggregate_image_analyses([
            photo("kitchen", 2.0, renovation_indicators=["dated-cabinets", "old-appliances"]),
            photo("bathroom", 2.0, damage_signals=["water-damage", "mold"]),
            photo("roof", 2.0, damage_signals=["missing-shingles", "not-a-signal"],
                  damage_flags=["roof-sag"]),
        ])

        assert scores.renovation_score == 20.0
        assert scores.damage_risk_score == 45.0
        assert scores.renovation_indicators == ["dated-cabinets", "old-appliances"]
        assert scores.damage_flags == ["roof-sag"]
        assert scores.condition_category == ConditionCategory.MEDIUM

    def test_damage_risk_capped(self, photo):
        signals = ["water-damage", "mold", "cracks", "broken-windows"]
        scores = aggregate_image_analyses([
            photo("kitchen", damage_signals=signals),
            photo("bathroom", damage_signals=signals),
        ])
        assert scores.damage_risk_score == 100.0

    def test_no_photos(self):
        scores = aggregate_image_analyses([])
        assert scores == ConditionScores()
        assert scores.condition_category == ConditionCategory.MEDIUM


# =============================================================================
# Test: Rating and Category
# =============================================================================

class TestRatingAndCategory:
    """Tests for condition_rating and determine_condition_category."""

    @pytest.mark.parametrize("overall,expected", [
        (10.0, 5.0),
        (9.0, 5.0),
        (5.0, 3.0),
        (4.0, 2.0),
        (1.0, 1.0),
    ])
    def test_rating_from_overall(self, overall, expected):
        assert condition_rating(ConditionScores(overall_score=overall)) == expected

    def test_rating_defaults_to_average(self):
        assert condition_rating(None) == 3.0

    @pytest.mark.parametrize("repairs,expected", [
        (20000, ConditionCategory.LIGHT),
        (50000, ConditionCategory.MEDIUM),
        (90000, ConditionCategory.HEAVY),
    ])
    def test_category_from_repair_ratio(self, repairs, expected):
        assert determine_condition_category(repairs, 300000) == expected

    def test_category_without_arv(self):
        assert determine_condition_category(20000, None) == ConditionCategory.MEDIUM

    def test_photo_damage_overrides_ratio(self):
        scores = ConditionScores(overall_score=8.0, damage_risk_score=75.0)
        assert determine_condition_category(0, 300000, scores) == ConditionCategory.HEAVY


# =============================================================================
# Test: Repair Estimate
# =============================================================================

class TestRepairEstimate:
    """Tests for estimate_repairs_from_condition."""

    @pytest.mark.parametrize("category,expected", [
        (ConditionCategory.LIGHT, 15000),
        (ConditionCategory.MEDIUM, 36000),
        (ConditionCategory.HEAVY, 75000),
    ])
    def test_percent_by_category(self, category, expected):
        scores = ConditionScores(condition_category=category)
        assert estimate_repairs_from_condition(300000, scores) == expected

    def test_high_damage_floor(self):
        scores = ConditionScores(
            condition_category=ConditionCategory.LIGHT,
            damage_risk_score=70.0,
        )
        assert estimate_repairs_from_condition(300000, scores) == 90000

    def test_capped_at_largest_accepted_budget(self):
        scores = ConditionScores(damage_risk_score=70.0)
        estimate = estimate_repairs_from_condition(40_000_000, scores)

        assert estimate == MAX_ESTIMATED_REPAIRS
        assert ValuationInputs(estimated_repairs=estimate).estimated_repairs == MAX_ESTIMATED_REPAIRS

    def test_requires_arv_and_scores(self):
        assert estimate_repairs_from_condition(None, ConditionScores()) is None
        assert estimate_repairs_from_condition(300000, None) is None


# =============================================================================
# Test: Room-type Comparison
# =============================================================================

class TestRoomComparison:
    """Tests for align_room_types and room_condition_adjustment."""

    def test_better_comp_gives_positive_adjustment(self, photo):
        comparisons = align_room_types(
            [photo("kitchen", 3.0)],
            [photo("kitchen", 4.0)],
        )

        assert len(comparisons) == 1
        assert comparisons[0].condition_difference == 1.0
        assert room_condition_adjustment(comparisons) == pytest.approx(0.03)

    def test_only_shared_rooms_compared(self, photo):
        comparisons = align_room_types(
            [photo("kitchen", 3.0), photo("bathroom", 2.0)],
            [photo("kitchen", 3.0), photo("garage", 5.0)],
        )
        assert [c.room_type for c in comparisons] == ["kitchen"]

    def test_most_confident_photo_used(self, photo):
        comparisons = align_room_types(
            [photo("kitchen", 3.0)],
            [photo("kitchen", 1.0, confidence=40), photo("kitchen", 5.0, confidence=90)],
        )
        assert comparisons[0].comp_condition == 5.0

    def test_worse_comp_gives_negative_adjustment(self, photo):
        comparisons = align_room_types(
            [photo("kitchen", 5.0), photo("exterior-front", 5.0)],
            [photo("kitchen", 3.0), photo("exterior-front", 3.0)],
        )
        assert room_condition_adjustment(comparisons) == pytest.approx(-0.06)

    def test_nothing_to_compare(self):
        assert room_condition_adjustment([]) == 0.0
