"""
Comp Eligibility Filters for the Comp Engine

Implements the hard attribute gate for comparable sale selection:
- Property category (exact match after synonym collapsing)
- Beds / baths (absolute tolerance)
- Square footage (relative tolerance, only when both known)
- Lot size (relative tolerance, skipped in urban areas)
- Year built (absolute tolerance, skipped for pre-1980 subjects)

Distances and date windows used by comp acquisition also live here.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import date, timedelta
from typing import List, Optional

from .models import ComparableSale, MatchingCriteria, SubjectProperty


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

# Earth radius in miles
EARTH_RADIUS_MILES = 3959.0

# Subjects built before this year skip the year-built check
OLDER_HOUSING_CUTOFF_YEAR = 1980

# Average month length used for date windows
DAYS_PER_MONTH = 30


# =============================================================================
# Distance
# =============================================================================


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float,
) -> float:
    """
    Calculate distance between two points in miles using Haversine formula.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in miles
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.asin(math.sqrt(min(1.0, a)))

    return EARTH_RADIUS_MILES * c


def with_distance(subject: SubjectProperty, comp: ComparableSale) -> ComparableSale:
    """Return a copy of comp with distance recomputed from coordinates."""
    distance = haversine_distance(
        subject.latitude, subject.longitude,
        comp.latitude, comp.longitude,
    )
    return replace(comp, distance_miles=round(distance, 4))


def is_within_radius(comp: ComparableSale, max_miles: float) -> bool:
    """Check a comp with computed distance against a radius."""
    return comp.distance_miles is not None and comp.distance_miles <= max_miles


def is_within_window(
    comp: ComparableSale,
    reference_date: date,
    max_months: int,
) -> bool:
    """
    Check if a comp sold within the time window.

    Undated comps are kept; recency scoring penalises them instead.
    """
    if comp.sale_date is None:
        return True
    cutoff = reference_date - timedelta(days=max_months * DAYS_PER_MONTH)
    return comp.sale_date >= cutoff


# =============================================================================
# Attribute Matching
# =============================================================================


class AttributeMatchFilter:
    """
    Decides which candidate comps are eligible for scoring.

    A comp must pass ALL checks. Missing size data never disqualifies;
    missing beds/baths count as zero.
    """

    def __init__(self, criteria: MatchingCriteria):
        """
        Initialize filter with matching criteria.

        Args:
            criteria: Tolerances from the search-parameter builder
        """
        self._criteria = criteria

    @property
    def criteria(self) -> MatchingCriteria:
        return self._criteria

    def rejection_reason(
        self,
        subject: SubjectProperty,
        comp: ComparableSale,
    ) -> Optional[str]:
        """
        Return why a comp fails matching, or None if it is eligible.
        """
        criteria = self._criteria

        if criteria.match_property_type:
            subject_type = subject.category
            comp_type = comp.category
            if subject_type and comp_type and subject_type != comp_type:
                return f"property type {comp_type} != {subject_type}"

        bed_diff = abs((comp.beds or 0) - (subject.beds or 0))
        if bed_diff > criteria.bed_tolerance:
            return f"beds differ by {bed_diff:g}"

        bath_diff = abs((comp.baths or 0) - (subject.baths or 0))
        if bath_diff > criteria.bath_tolerance:
            return f"baths differ by {bath_diff:g}"

        subject_sqft = subject.square_footage or 0
        comp_sqft = comp.square_footage or 0
        if subject_sqft > 0 and comp_sqft > 0:
            sqft_diff = abs(comp_sqft - subject_sqft) / subject_sqft
            if sqft_diff > criteria.sqft_tolerance:
                return f"sqft differs by {sqft_diff:.0%}"

        if criteria.lots_matter:
            subject_lot = subject.lot_size or 0
            comp_lot = comp.lot_size or 0
            if subject_lot > 0 and comp_lot > 0:
                lot_diff = abs(comp_lot - subject_lot) / subject_lot
                if lot_diff > criteria.lot_tolerance:
                    return f"lot size differs by {lot_diff:.0%}"

        subject_year = subject.year_built or 0
        comp_year = comp.year_built or 0
        older_housing = 0 < subject_year < OLDER_HOUSING_CUTOFF_YEAR
        if not older_housing and subject_year > 0 and comp_year > 0:
            year_diff = abs(comp_year - subject_year)
            if year_diff > criteria.year_tolerance:
                return f"year built differs by {year_diff}"

        return None

    def is_eligible(self, subject: SubjectProperty, comp: ComparableSale) -> bool:
        """Check whether a comp passes every matching rule."""
        return self.rejection_reason(subject, comp) is None

    def filter(
        self,
        subject: SubjectProperty,
        comps: List[ComparableSale],
    ) -> List[ComparableSale]:
        """Filter comps to those passing every matching rule."""
        eligible = []
        for comp in comps:
            reason = self.rejection_reason(subject, comp)
            if reason:
                logger.debug("Comp filtered out (%s): %s", reason, comp.address)
                continue
            eligible.append(comp)

        logger.info(
            "Filtered %d comps to %d meeting attribute matching criteria",
            len(comps), len(eligible),
        )
        return eligible


def filter_eligible(
    subject: SubjectProperty,
    comps: List[ComparableSale],
    criteria: MatchingCriteria,
) -> List[ComparableSale]:
    """
    Return the comps eligible for scoring.

    Args:
        subject: The subject property
        comps: Candidate comparable sales
        criteria: Matching tolerances

    Returns:
        Eligible comps in input order (may be empty)
    """
    return AttributeMatchFilter(criteria).filter(subject, comps)
