"""
Deal Score Composer

Combines five signals into one 0-100 deal quality score:
- Spread (40%): ARV vs asking price
- Repairs (20%): Repair burden relative to ARV
- Market (20%): Days-on-market vs comps (60%) and demand signals (40%)
- Area (10%): Neighbourhood rating, or an area-type/price-tier proxy
- Comp strength (10%): Mean comp score of the comps used
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .models import AreaType, ComparableSale, DealScore, SubjectProperty


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

WEIGHT_SPREAD = 0.40
WEIGHT_REPAIR = 0.20
WEIGHT_MARKET = 0.20
WEIGHT_AREA = 0.10
WEIGHT_COMP_STRENGTH = 0.10

# Market score blend
WEIGHT_DOM = 0.60
WEIGHT_DEMAND = 0.40

# Subject days on market when unknown
DEFAULT_DAYS_ON_MARKET = 90

# Demand score when no demand signal is available
NEUTRAL_DEMAND_SCORE = 50.0

# Rating the neighbourhood collaborator returns when it has no real data
NEUTRAL_NEIGHBORHOOD_RATING = 50.0

# Price trend needs at least this many dated, priced comps
MIN_COMPS_FOR_TREND = 4

# Inventory level from comp pool size
LOW_INVENTORY_MAX_COMPS = 5
MEDIUM_INVENTORY_MAX_COMPS = 10

# Neighbourhood proxy
AREA_BASE_SCORES = {
    AreaType.URBAN: 65.0,
    AreaType.SUBURBAN: 70.0,
    AreaType.RURAL: 45.0,
}
PRICE_TIER_HIGH = 500_000
PRICE_TIER_UPPER = 300_000
PRICE_TIER_LOW = 150_000


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


@dataclass
class DealContext:
    """
    Analysis inputs the composer needs beyond the subject and comps.

    neighborhood_rating is None when the rating collaborator has nothing.
    """
    arv: float
    estimated_repairs: float = 0.0
    area_type: AreaType = AreaType.SUBURBAN
    days_on_market: Optional[int] = None
    neighborhood_rating: Optional[float] = None


@dataclass
class DemandSignals:
    """Optional demand indicators derived from the comp pool."""
    price_trend: Optional[float] = None  # percent change, recent vs older
    inventory_level: Optional[str] = None  # low / medium / high
    sale_velocity: Optional[float] = None  # 25-100

    @property
    def is_empty(self) -> bool:
        return (
            self.price_trend is None
            and self.inventory_level is None
            and self.sale_velocity is None
        )


def neighborhood_proxy(area_type: AreaType, price: Optional[float]) -> float:
    """
    Area score from area type and price tier.

    Args:
        area_type: Urban/suburban/rural
        price: Asking price, or ARV if there is none

    Returns:
        Proxy rating 0-100
    """
    score = AREA_BASE_SCORES.get(area_type, 50.0)
    if price and price > 0:
        if price > PRICE_TIER_HIGH:
            score += 15
        elif price > PRICE_TIER_UPPER:
            score += 10
        elif price < PRICE_TIER_LOW:
            score -= 10
    return _clamp(score)


class DealScoreComposer:
    """
    Composes the Deal Score for a subject property.

    Missing DOM, neighbourhood rating and demand data never fail the
    calculation; each falls back to a documented neutral value.
    """

    def compose(
        self,
        subject: SubjectProperty,
        context: DealContext,
        comps: List[ComparableSale],
    ) -> DealScore:
        """
        Calculate the Deal Score and its sub-scores.

        Args:
            subject: The property being evaluated
            context: ARV, repairs, area type, DOM and neighbourhood rating
            comps: Comps used for the valuation

        Returns:
            DealScore with every component rounded to 2 decimals
        """
        spread_score = self._calculate_spread_score(subject.asking_price, context.arv)
        repair_score = self._calculate_repair_score(context.estimated_repairs, context.arv)

        subject_dom = context.days_on_market
        if subject_dom is None:
            subject_dom = subject.days_on_market
        if subject_dom is None:
            subject_dom = DEFAULT_DAYS_ON_MARKET

        avg_comp_dom = self._average_comp_dom(comps)
        dom_score = self._calculate_dom_score(subject_dom, avg_comp_dom)
        demand_score = self._calculate_demand_score(self._demand_signals(comps, avg_comp_dom))
        market_score = _clamp(dom_score * WEIGHT_DOM + demand_score * WEIGHT_DEMAND)

        used_proxy = not self._has_rating(context.neighborhood_rating)
        if used_proxy:
            area_score = neighborhood_proxy(context.area_type, subject.asking_price or context.arv)
        else:
            area_score = _clamp(context.neighborhood_rating)

        comp_strength_score = self._calculate_comp_strength(comps)

        deal_score = _clamp(
            spread_score * WEIGHT_SPREAD
            + repair_score * WEIGHT_REPAIR
            + market_score * WEIGHT_MARKET
            + area_score * WEIGHT_AREA
            + comp_strength_score * WEIGHT_COMP_STRENGTH
        )

        logger.debug(
            "Deal score %.2f (spread %.1f, repair %.1f, market %.1f, area %.1f, comps %.1f)",
            deal_score, spread_score, repair_score, market_score, area_score, comp_strength_score,
        )

        return DealScore(
            deal_score=round(deal_score, 2),
            spread_score=round(spread_score, 2),
            repair_score=round(repair_score, 2),
            market_score=round(market_score, 2),
            area_score=round(area_score, 2),
            comp_strength_score=round(comp_strength_score, 2),
            dom_score=round(dom_score, 2),
            demand_score=round(demand_score, 2),
            used_neighborhood_proxy=used_proxy,
        )

    # =========================================================================
    # Components
    # =========================================================================

    @staticmethod
    def _calculate_spread_score(asking_price: Optional[float], arv: float) -> float:
        """Break-even centres on 50; each point of spread moves 2 points."""
        if not asking_price or asking_price <= 0:
            spread_percent = 0.0
        else:
            spread_percent = (arv - asking_price) / asking_price * 100
        return _clamp(50 + spread_percent * 2)

    @staticmethod
    def _calculate_repair_score(repairs: float, arv: float) -> float:
        repair_percent = (repairs / arv * 100) if arv and arv > 0 else 100.0
        return _clamp(100 - repair_percent * 2)

    @staticmethod
    def _average_comp_dom(comps: List[ComparableSale]) -> Optional[float]:
        doms = [c.days_on_market for c in comps if c.days_on_market and c.days_on_market > 0]
        if not doms:
            return None
        return sum(doms) / len(doms)

    def _calculate_dom_score(self, subject_dom: float, avg_comp_dom: Optional[float]) -> float:
        """
        Subject DOM relative to the comp average.

        Faster than market scores higher. Break points at -20%, -10%, 0%,
        +20% and +50%; without comp DOM a static curve on subject DOM is used.
        """
        if not avg_comp_dom:
            return self._static_dom_score(subject_dom)

        diff = (subject_dom - avg_comp_dom) / avg_comp_dom * 100
        if diff <= -20:
            score = 100.0
        elif diff <= -10:
            score = 90 + (abs(diff) - 10)
        elif diff <= 0:
            score = 80 + abs(diff)
        elif diff <= 20:
            score = 80 - diff
        elif diff <= 50:
            score = 60 - ((diff - 20) / 30) * 30
        else:
            score = 30 - ((diff - 50) / 50) * 30
        return _clamp(score)

    @staticmethod
    def _static_dom_score(dom: float) -> float:
        if dom <= 30:
            score = 100 - (dom / 30) * 20
        elif dom <= 60:
            score = 80 - ((dom - 30) / 30) * 30
        elif dom <= 90:
            score = 50 - ((dom - 60) / 30) * 30
        else:
            score = 20 - ((dom - 90) / 30) * 20
        return _clamp(score)

    @staticmethod
    def _demand_signals(
        comps: List[ComparableSale],
        avg_comp_dom: Optional[float],
    ) -> DemandSignals:
        signals = DemandSignals()
        if not comps:
            return signals

        dated = sorted(
            (c for c in comps if c.sale_date and c.sale_price),
            key=lambda c: c.sale_date,
            reverse=True,
        )
        if len(dated) >= MIN_COMPS_FOR_TREND:
            midpoint = len(dated) // 2
            recent = dated[:midpoint]
            older = dated[midpoint:]
            recent_avg = sum(c.sale_price for c in recent) / len(recent)
            older_avg = sum(c.sale_price for c in older) / len(older)
            if older_avg > 0:
                signals.price_trend = (recent_avg - older_avg) / older_avg * 100

        # Pool size stands in for market inventory. This conflates search
        # breadth with supply and is an approximation, not a market measure.
        if len(comps) <= LOW_INVENTORY_MAX_COMPS:
            signals.inventory_level = "low"
        elif len(comps) <= MEDIUM_INVENTORY_MAX_COMPS:
            signals.inventory_level = "medium"
        else:
            signals.inventory_level = "high"

        if avg_comp_dom:
            if avg_comp_dom <= 30:
                signals.sale_velocity = 100.0
            elif avg_comp_dom <= 60:
                signals.sale_velocity = 75.0
            elif avg_comp_dom <= 90:
                signals.sale_velocity = 50.0
            else:
                signals.sale_velocity = 25.0

        return signals

    @staticmethod
    def _calculate_demand_score(signals: DemandSignals) -> float:
        """
        Average of the available demand components, scaled to 0-100.

        Each component is worth up to 30-40 points; missing ones are left
        out of the average.
        """
        if signals.is_empty:
            return NEUTRAL_DEMAND_SCORE

        components = []
        if signals.price_trend is not None:
            components.append(min(30.0, max(0.0, 15 + signals.price_trend / 2)))
        if signals.inventory_level is not None:
            components.append({"low": 30.0, "medium": 15.0}.get(signals.inventory_level, 0.0))
        if signals.sale_velocity is not None:
            components.append(signals.sale_velocity * 0.4)

        average = sum(components) / len(components)
        return _clamp(average / 40 * 100)

    @staticmethod
    def _has_rating(rating: Optional[float]) -> bool:
        return bool(rating) and rating != NEUTRAL_NEIGHBORHOOD_RATING

    @staticmethod
    def _calculate_comp_strength(comps: List[ComparableSale]) -> float:
        if not comps:
            return 0.0
        return _clamp(sum(c.comp_score or 0.0 for c in comps) / len(comps))


def compose_deal_score(
    subject: SubjectProperty,
    context: DealContext,
    comps: List[ComparableSale],
) -> DealScore:
    """Calculate the Deal Score. See DealScoreComposer.compose."""
    return DealScoreComposer().compose(subject, context, comps)
