"""
ARV Estimator for the Comp Engine

Implements:
- Size adjustment of comp prices to the subject's square footage
- Condition adjustment from photo comparison (clamped to +/-15%)
- Outlier removal at +/-20% of the median adjusted price
- Comp-score weighted ARV with arithmetic mean fallback
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass, field, replace
from typing import List, Optional

from .models import ArvMethod, ComparableSale, SubjectProperty


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

# Adjusted prices outside median +/- this fraction are outliers
OUTLIER_BAND = 0.20

# Condition adjustment clamp (fraction of price)
MAX_CONDITION_ADJUSTMENT = 0.15


@dataclass
class ARVEstimate:
    """ARV with the adjusted comps and outlier metadata behind it."""
    arv: Optional[float]
    method: Optional[ArvMethod]
    adjusted_comps: List[ComparableSale] = field(default_factory=list)
    comps_used: List[ComparableSale] = field(default_factory=list)
    median_price: Optional[float] = None
    outliers_removed: int = 0
    outlier_fallback: bool = False

    @property
    def is_available(self) -> bool:
        return self.arv is not None


def clamp_condition_adjustment(percent: float) -> float:
    """Clamp a condition adjustment to +/-MAX_CONDITION_ADJUSTMENT."""
    return max(-MAX_CONDITION_ADJUSTMENT, min(MAX_CONDITION_ADJUSTMENT, percent))


class ARVEstimator:
    """
    After-Repair Value estimation from a chosen comp set.

    Pipeline order:
    1. ADJUST - Scale each price to subject size, apply condition adjustment
    2. QUALITY CONTROL - Drop adjusted prices outside median +/-20%
    3. AGGREGATE - Comp-score weighted mean, arithmetic mean fallback

    Pure: the same comps always produce the same estimate.
    """

    def estimate(
        self,
        subject: SubjectProperty,
        comps: List[ComparableSale],
    ) -> ARVEstimate:
        """
        Estimate ARV for a subject property.

        Args:
            subject: The property being valued
            comps: Comps the caller has chosen to use (no minimum enforced)

        Returns:
            ARVEstimate; arv is None if no comp had a usable price
        """
        if not comps:
            return ARVEstimate(arv=None, method=None)

        # Step 1: Adjust prices
        adjusted = [
            replace(c, adjusted_price=self.adjust_price(subject, c))
            for c in comps
        ]
        priced = [c for c in adjusted if c.adjusted_price is not None]

        if not priced:
            logger.warning("No comp with a usable price for %s", subject.address)
            return ARVEstimate(arv=None, method=None, adjusted_comps=adjusted)

        # Step 2: Remove outliers
        median_price = statistics.median(c.adjusted_price for c in priced)
        kept = self._remove_outliers(priced, median_price)
        outlier_fallback = not kept
        if outlier_fallback:
            logger.info("Outlier rejection removed every comp; using unfiltered set")
            kept = priced

        # Step 3: Aggregate
        arv = self._weighted_mean(kept)
        method = ArvMethod.WEIGHTED
        if arv is None or arv <= 0:
            arv = statistics.fmean(c.adjusted_price for c in kept)
            method = ArvMethod.AVERAGE

        return ARVEstimate(
            arv=arv,
            method=method,
            adjusted_comps=adjusted,
            comps_used=kept,
            median_price=median_price,
            outliers_removed=0 if outlier_fallback else len(priced) - len(kept),
            outlier_fallback=outlier_fallback,
        )

    def adjust_price(
        self,
        subject: SubjectProperty,
        comp: ComparableSale,
    ) -> Optional[float]:
        """
        Size- and condition-adjusted price of a comp.

        A comp in better condition than the subject (positive adjustment)
        is discounted; one in worse condition is marked up.

        Returns:
            Adjusted price, or None if the comp has no usable price
        """
        price = comp.price
        if price is None:
            return None

        subject_sqft = subject.square_footage or 0
        comp_sqft = comp.square_footage or 0
        factor = subject_sqft / comp_sqft if subject_sqft > 0 and comp_sqft > 0 else 1.0
        adjusted = price * factor

        condition_adjustment = clamp_condition_adjustment(comp.condition_adjustment_percent or 0.0)
        if condition_adjustment:
            adjusted *= 1 - condition_adjustment
            logger.debug(
                "Applied condition adjustment %.2f%% to comp %s",
                condition_adjustment * 100, comp.address,
            )

        return adjusted

    @staticmethod
    def _remove_outliers(
        comps: List[ComparableSale],
        median_price: float,
    ) -> List[ComparableSale]:
        """Keep comps whose adjusted price is within median +/- OUTLIER_BAND (inclusive)."""
        price_range = median_price * OUTLIER_BAND
        low = median_price - price_range
        high = median_price + price_range
        return [c for c in comps if low <= c.adjusted_price <= high]

    @staticmethod
    def _weighted_mean(comps: List[ComparableSale]) -> Optional[float]:
        """Comp-score weighted mean; unscored comps get weight 1."""
        total_weighted = 0.0
        total_weight = 0.0
        for comp in comps:
            if comp.adjusted_price is None or comp.adjusted_price <= 0:
                continue
            weight = comp.comp_score if comp.comp_score and comp.comp_score > 0 else 1.0
            total_weighted += comp.adjusted_price * weight
            total_weight += weight
        return total_weighted / total_weight if total_weight > 0 else None


def estimate_arv(
    subject: SubjectProperty,
    comps: List[ComparableSale],
) -> Optional[float]:
    """
    Estimate ARV from comps.

    Returns:
        ARV, or None if no comp yielded a usable adjusted price
    """
    return ARVEstimator().estimate(subject, comps).arv
