"""
Search Parameters for the Comp Engine

Derives the comp search radius, time window and attribute tolerances from
the area classification and subject size, and drives the bounded
radius/window expansion used when too few comps are found:
- Urban 0.25-0.75 mi, suburban 0.5-1.5 mi, rural 1.0-2.5 mi
- Sales within 6 months preferred, 12 months hard cap
- Square footage tolerance tightens for smaller homes
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Final, Iterable, List, Optional, Sequence

from .models import AreaType, ComparableSale, MatchingCriteria, SearchParams


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

# (min, default, max) radius in miles
RADIUS_BANDS: Final[dict[AreaType, tuple[float, float, float]]] = {
    AreaType.URBAN: (0.25, 0.5, 0.75),
    AreaType.SUBURBAN: (0.5, 1.0, 1.5),
    AreaType.RURAL: (1.0, 2.0, 2.5),
}

# Sale date window (months)
PREFERRED_MONTHS = 6
MAX_MONTHS = 12

# Attribute tolerances
BED_TOLERANCE = 1
BATH_TOLERANCE = 1
LOT_TOLERANCE = 0.50
YEAR_TOLERANCE = 10

# Geocoder place types
URBAN_PLACE_TYPES: Final[frozenset[str]] = frozenset({"locality", "sublocality", "neighborhood"})
RURAL_PLACE_TYPES: Final[frozenset[str]] = frozenset({"administrative_area_level_2", "country"})

# Expansion
MIN_COMPS_TARGET = 3
WINDOW_STEP_MONTHS = 3
RADIUS_STEP_MILES = 0.25
RADIUS_STEP_WIDE_MILES = 0.5
WIDE_RADIUS_THRESHOLD = 1.5
MAX_EXPANSION_STEPS = 12


# =============================================================================
# Parameter Builder
# =============================================================================


def classify_area(place_types: Optional[Iterable[str]]) -> AreaType:
    """
    Classify the subject's area from geocoder place types.

    Args:
        place_types: Place types returned by the geocoding collaborator

    Returns:
        URBAN for locality-level results, RURAL for county/country-level
        results, otherwise SUBURBAN
    """
    types = set(place_types or ())
    if types & URBAN_PLACE_TYPES:
        return AreaType.URBAN
    if types & RURAL_PLACE_TYPES:
        return AreaType.RURAL
    return AreaType.SUBURBAN


def sqft_tolerance(subject_sqft: Optional[float]) -> float:
    """Relative square footage tolerance; smaller homes match tighter."""
    if not subject_sqft or subject_sqft <= 0:
        return 0.20
    if subject_sqft < 800:
        return 0.10
    if subject_sqft < 1200:
        return 0.15
    return 0.20


def build_matching_criteria(
    area_type: AreaType,
    subject_sqft: Optional[float],
) -> MatchingCriteria:
    """Attribute tolerances for the given area and subject size."""
    return MatchingCriteria(
        area_type=area_type,
        match_property_type=True,
        bed_tolerance=BED_TOLERANCE,
        bath_tolerance=BATH_TOLERANCE,
        sqft_tolerance=sqft_tolerance(subject_sqft),
        lot_tolerance=LOT_TOLERANCE,
        year_tolerance=YEAR_TOLERANCE,
    )


def build_search_params(
    area_type: AreaType,
    subject_sqft: Optional[float],
) -> SearchParams:
    """
    Build search parameters for a subject property.

    Args:
        area_type: Urban/suburban/rural classification
        subject_sqft: Subject square footage (None if unknown)

    Returns:
        SearchParams with radius band, time window and matching criteria
    """
    min_radius, radius, max_radius = RADIUS_BANDS[area_type]
    return SearchParams(
        radius=radius,
        min_radius=min_radius,
        max_radius=max_radius,
        preferred_months=PREFERRED_MONTHS,
        max_months=MAX_MONTHS,
        matching_criteria=build_matching_criteria(area_type, subject_sqft),
    )


# =============================================================================
# Search Expansion
# =============================================================================


@dataclass(frozen=True)
class SearchStep:
    """One radius/window combination tried during a search."""
    radius_miles: float
    window_months: int
    index: int = 0


@dataclass
class SearchOutcome:
    """Comps found and the widest step that was searched."""
    comps: List[ComparableSale]
    step: SearchStep
    steps_taken: int
    exhausted: bool = False
    history: List[SearchStep] = field(default_factory=list)

    @property
    def is_sufficient(self) -> bool:
        return len(self.comps) >= MIN_COMPS_TARGET


class SearchExpansion:
    """
    Iterative radius/window widening with a bounded step count.

    Starting at (default radius, preferred window), each step first widens
    the time window by WINDOW_STEP_MONTHS up to the cap, then the radius by
    RADIUS_STEP_MILES (RADIUS_STEP_WIDE_MILES once at or beyond
    WIDE_RADIUS_THRESHOLD) up to the band maximum.

    Terminates when enough comps are found, when both the maximum radius
    and the maximum window are reached, or after max_steps searches,
    whichever comes first. Whatever was found is returned.
    """

    def __init__(
        self,
        params: SearchParams,
        min_comps: int = MIN_COMPS_TARGET,
        max_steps: int = MAX_EXPANSION_STEPS,
    ):
        self._params = params
        self._min_comps = min_comps
        self._max_steps = max_steps

    @property
    def first_step(self) -> SearchStep:
        return SearchStep(
            radius_miles=self._params.radius,
            window_months=min(self._params.preferred_months, self._params.max_months),
        )

    def next_step(self, step: SearchStep) -> Optional[SearchStep]:
        """Return the next wider step, or None once both maxima are reached."""
        if step.window_months < self._params.max_months:
            return SearchStep(
                radius_miles=step.radius_miles,
                window_months=min(step.window_months + WINDOW_STEP_MONTHS, self._params.max_months),
                index=step.index + 1,
            )

        if step.radius_miles < self._params.max_radius:
            increment = (
                RADIUS_STEP_WIDE_MILES
                if step.radius_miles >= WIDE_RADIUS_THRESHOLD
                else RADIUS_STEP_MILES
            )
            return SearchStep(
                radius_miles=round(min(step.radius_miles + increment, self._params.max_radius), 4),
                window_months=step.window_months,
                index=step.index + 1,
            )

        return None

    def run(self, search: Callable[[SearchStep], Sequence[ComparableSale]]) -> SearchOutcome:
        """
        Search at successively wider steps until a termination condition holds.

        Args:
            search: Returns the comps found for a step (cumulative results
                are the caller's concern)

        Returns:
            SearchOutcome with the comps from the last step searched
        """
        step = self.first_step
        history: List[SearchStep] = []
        comps: List[ComparableSale] = []

        while True:
            history.append(step)
            comps = list(search(step))

            if len(comps) >= self._min_comps:
                return SearchOutcome(comps, step, len(history), history=history)

            if len(history) >= self._max_steps:
                logger.warning(
                    "Search stopped after %d steps with %d comps (radius %.2f mi, %d months)",
                    len(history), len(comps), step.radius_miles, step.window_months,
                )
                return SearchOutcome(comps, step, len(history), exhausted=True, history=history)

            wider = self.next_step(step)
            if wider is None:
                logger.info(
                    "Search exhausted at radius %.2f mi / %d months with %d comps",
                    step.radius_miles, step.window_months, len(comps),
                )
                return SearchOutcome(comps, step, len(history), exhausted=True, history=history)

            logger.debug(
                "Only %d comps found, widening to radius %.2f mi / %d months",
                len(comps), wider.radius_miles, wider.window_months,
            )
            step = wider
