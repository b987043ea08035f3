"""
Comp scoring logic.

Scores each eligible comparable sale 0-100 from six weighted similarity
factors. Comps that fail attribute matching are never scored; if none
pass, the whole pool is returned with zero scores and flagged.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import List, Optional

from .filters import AttributeMatchFilter, DAYS_PER_MONTH, with_distance
from .models import (
    DEFAULT_CONDITION_RATING,
    ComparableSale,
    MatchingCriteria,
    SubjectProperty,
)


logger = logging.getLogger(__name__)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


class CompScorer:
    """
    Calculates similarity scores for comparable sales.

    Scoring methodology:
    - Distance (25%): Relative to the farthest comp in the pool
    - Recency (20%): Linear decay, zero by 10 months
    - Square footage (20%): Zero at a 20% size difference
    - Beds/baths (15%): 25 points per bed or bath of difference
    - Year built (10%): 2 points per year of difference
    - Condition (10%): Rating on a 1-5 scale, boosted with photo evidence

    Ties on score are broken by distance, then address.
    """

    # Scoring weights (sum to 1.0)
    WEIGHT_DISTANCE = 0.25
    WEIGHT_RECENCY = 0.20
    WEIGHT_SQFT = 0.20
    WEIGHT_BED_BATH = 0.15
    WEIGHT_YEAR_BUILT = 0.10
    WEIGHT_CONDITION = 0.10

    # Defaults for missing data
    UNDATED_SALE_MONTHS = 12
    DEFAULT_YEAR_BUILT = 2000
    DEFAULT_IMAGE_CONFIDENCE = 70.0

    def __init__(self, reference_date: date = None):
        """
        Initialize scorer with reference date.

        Args:
            reference_date: Date to measure sale recency from (default: today)
        """
        self._reference_date = reference_date or date.today()

    @classmethod
    def weights(cls) -> dict[str, float]:
        return {
            "distance": cls.WEIGHT_DISTANCE,
            "recency": cls.WEIGHT_RECENCY,
            "sqft": cls.WEIGHT_SQFT,
            "bed_bath": cls.WEIGHT_BED_BATH,
            "year_built": cls.WEIGHT_YEAR_BUILT,
            "condition": cls.WEIGHT_CONDITION,
        }

    def score_comps(
        self,
        subject: SubjectProperty,
        comps: List[ComparableSale],
        criteria: MatchingCriteria,
    ) -> List[ComparableSale]:
        """
        Filter and score comps against the subject.

        Args:
            subject: The property being valued
            comps: Candidate comps (distance is recomputed here)
            criteria: Matching tolerances

        Returns:
            Scored eligible comps sorted best first, or every comp with a
            zero score and filtered_out=True if none are eligible
        """
        if not comps:
            return []

        pool = [with_distance(subject, c) for c in comps]
        eligible = AttributeMatchFilter(criteria).filter(subject, pool)

        if not eligible:
            logger.warning(
                "No comps meet the attribute matching criteria for %s; "
                "returning all %d with zero scores",
                subject.address, len(pool),
            )
            return self._sorted([
                replace(c, comp_score=0.0, filtered_out=True) for c in pool
            ])

        # Pool-relative distance uses every candidate, not just eligible ones
        distances = [c.distance_miles for c in pool if c.distance_miles and c.distance_miles > 0]
        max_distance = max(distances) if distances else 1.0

        scored = [self._score_one(subject, c, max_distance) for c in eligible]
        return self._sorted(scored)

    def _score_one(
        self,
        subject: SubjectProperty,
        comp: ComparableSale,
        max_distance: float,
    ) -> ComparableSale:
        distance_score = self._calculate_distance_score(comp, max_distance)
        recency_score = self._calculate_recency_score(comp)
        sqft_score = self._calculate_sqft_score(subject, comp)
        bed_bath_score = self._calculate_bed_bath_score(subject, comp)
        year_built_score = self._calculate_year_built_score(subject, comp)
        condition_score = self._calculate_condition_score(comp)

        comp_score = (
            distance_score * self.WEIGHT_DISTANCE
            + recency_score * self.WEIGHT_RECENCY
            + sqft_score * self.WEIGHT_SQFT
            + bed_bath_score * self.WEIGHT_BED_BATH
            + year_built_score * self.WEIGHT_YEAR_BUILT
            + condition_score * self.WEIGHT_CONDITION
        )

        return replace(
            comp,
            distance_score=round(distance_score, 2),
            recency_score=round(recency_score, 2),
            sqft_score=round(sqft_score, 2),
            bed_bath_score=round(bed_bath_score, 2),
            year_built_score=round(year_built_score, 2),
            condition_score=round(condition_score, 2),
            comp_score=round(_clamp(comp_score), 2),
            filtered_out=False,
        )

    @staticmethod
    def _sorted(comps: List[ComparableSale]) -> List[ComparableSale]:
        return sorted(
            comps,
            key=lambda c: (
                -(c.comp_score or 0.0),
                c.distance_miles if c.distance_miles is not None else float("inf"),
                c.address,
            ),
        )

    def _calculate_distance_score(self, comp: ComparableSale, max_distance: float) -> float:
        """Zero distance scores 100, the farthest comp in the pool scores 0."""
        if max_distance <= 0:
            return 100.0
        return _clamp((1 - (comp.distance_miles or 0) / max_distance) * 100)

    def _calculate_recency_score(self, comp: ComparableSale) -> float:
        months = self._months_since_sale(comp.sale_date)
        return _clamp(100 - months * 10)

    def _calculate_sqft_score(self, subject: SubjectProperty, comp: ComparableSale) -> float:
        subject_sqft = subject.square_footage or 0
        comp_sqft = comp.square_footage or 0
        if subject_sqft > 0:
            sqft_diff = abs(comp_sqft - subject_sqft) / subject_sqft
        else:
            sqft_diff = 1.0
        return _clamp(100 - sqft_diff * 500)

    def _calculate_bed_bath_score(self, subject: SubjectProperty, comp: ComparableSale) -> float:
        bed_diff = abs((comp.beds or 0) - (subject.beds or 0))
        bath_diff = abs((comp.baths or 0) - (subject.baths or 0))
        return _clamp(100 - (bed_diff + bath_diff) * 25)

    def _calculate_year_built_score(self, subject: SubjectProperty, comp: ComparableSale) -> float:
        subject_year = subject.year_built or self.DEFAULT_YEAR_BUILT
        comp_year = comp.year_built or self.DEFAULT_YEAR_BUILT
        return _clamp(100 - abs(comp_year - subject_year) * 2)

    def _calculate_condition_score(self, comp: ComparableSale) -> float:
        """
        Condition rating on 0-100.

        Rated comps with photos are scaled by 0.8-1.0 depending on the
        confidence of the photo assessment.
        """
        rating = comp.condition_rating or DEFAULT_CONDITION_RATING
        score = (rating / 5) * 100

        if comp.condition_rating and comp.has_images:
            confidence = comp.image_confidence
            if confidence is None:
                confidence = self.DEFAULT_IMAGE_CONFIDENCE
            score *= 0.8 + 0.2 * (_clamp(confidence) / 100)

        return _clamp(score)

    def _months_since_sale(self, sale_date: Optional[date]) -> float:
        if sale_date is None:
            return float(self.UNDATED_SALE_MONTHS)
        return (self._reference_date - sale_date).days / DAYS_PER_MONTH


def score_comps(
    subject: SubjectProperty,
    comps: List[ComparableSale],
    criteria: MatchingCriteria,
    reference_date: date = None,
) -> List[ComparableSale]:
    """
    Filter, score and rank comps against the subject.

    See CompScorer.score_comps.
    """
    return CompScorer(reference_date=reference_date).score_comps(subject, comps, criteria)
