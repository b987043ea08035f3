"""
Data models for the Comp Engine

Defines the subject property, comparable sales, search parameters,
valuation inputs and analysis results exchanged between pipeline stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Final, List, Optional, Tuple

from deal_engine.errors import ValidationError


# =============================================================================
# Input Bounds
# =============================================================================

MAX_ESTIMATED_REPAIRS: Final[float] = 10_000_000
MAX_LINE_ITEM_COST: Final[float] = 1_000_000
MIN_CUSTOM_RULE_PERCENT: Final[float] = 50
MAX_CUSTOM_RULE_PERCENT: Final[float] = 90

# Neutral condition rating (1-5 scale) used when no photo evidence exists
DEFAULT_CONDITION_RATING: Final[float] = 3.0


# =============================================================================
# Enumerations
# =============================================================================


class AreaType(Enum):
    """
    Area classification driving radius bands and lot-size relevance.
    """
    URBAN = "urban"
    SUBURBAN = "suburban"
    RURAL = "rural"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["AreaType"]:
        """Convert string to AreaType, case-insensitive."""
        if not value:
            return None
        normalised = value.lower().strip()
        for member in cls:
            if member.value == normalised:
                return member
        return None


class PropertyCategory(Enum):
    """
    Residential property category.

    Comps only match a subject of the same category once synonyms
    ("condominium", "SINGLE_FAMILY", "mobile home") are collapsed.
    """
    SINGLE_FAMILY = "single-family"
    CONDO = "condo"
    DUPLEX = "duplex"
    MULTI_UNIT = "multi-unit"
    VACANT_LOT = "vacant-lot"
    MANUFACTURED = "manufactured"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["PropertyCategory"]:
        """Collapse a free-form property type to a category, or None if unknown."""
        if not value:
            return None
        normalised = value.lower().strip().replace("_", "-")
        for member in cls:
            if member.value == normalised:
                return member
        for keywords, category in CATEGORY_KEYWORDS:
            if any(keyword in normalised for keyword in keywords):
                return category
        return None


# Checked in order; multi-unit precedes single-family so "multi-family" does
# not collapse to a house.
CATEGORY_KEYWORDS: Final[Tuple[Tuple[Tuple[str, ...], PropertyCategory], ...]] = (
    (("condo",), PropertyCategory.CONDO),
    (("duplex",), PropertyCategory.DUPLEX),
    (("multi", "apartment"), PropertyCategory.MULTI_UNIT),
    (("vacant", "lot", "land"), PropertyCategory.VACANT_LOT),
    (("manufactured", "mobile"), PropertyCategory.MANUFACTURED),
    (("single", "family", "house"), PropertyCategory.SINGLE_FAMILY),
)


def normalise_property_type(value: Optional[str]) -> str:
    """
    Return the comparison key for a raw property type.

    Known synonyms collapse to the category value, unknown types compare by
    their lower-cased raw string, and a missing type yields "".
    """
    if not value or not value.strip():
        return ""
    category = PropertyCategory.from_string(value)
    if category:
        return category.value
    return value.lower().strip()


class ListingStatus(Enum):
    """Listing status of a candidate record."""
    SOLD = "sold"
    ACTIVE = "active"
    PENDING = "pending"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["ListingStatus"]:
        """Convert string to ListingStatus, case-insensitive."""
        if not value:
            return None
        normalised = value.lower().strip()
        for member in cls:
            if member.value == normalised:
                return member
        return None


class DataSource(Enum):
    """Origin of a comparable sale record."""
    MLS = "mls"
    ZILLOW = "zillow"
    REDFIN = "redfin"
    REALTOR = "realtor"
    COUNTY = "county"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["DataSource"]:
        """Convert string to DataSource; "zillow-sold" style suffixes are ignored."""
        if not value:
            return None
        normalised = value.lower().strip().split("-")[0]
        for member in cls:
            if member.value == normalised:
                return member
        return None


class ConditionCategory(Enum):
    """Repair class derived from condition assessment or repair ratio."""
    LIGHT = "light-repairs"
    MEDIUM = "medium-repairs"
    HEAVY = "heavy-repairs"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["ConditionCategory"]:
        """Convert string to ConditionCategory, case-insensitive."""
        if not value:
            return None
        normalised = value.lower().strip()
        for member in cls:
            if member.value == normalised:
                return member
        return None


class Recommendation(Enum):
    """
    Deal recommendation based on Deal Score.

    Score >= 80: Strong deal
    Score 60-79.99: Good, negotiate
    Score 40-59.99: Weak, lowball only
    Score < 40: Pass
    """
    STRONG_DEAL = "strong-deal"
    GOOD_NEGOTIATE = "good-negotiate"
    WEAK_LOWBALL = "weak-lowball"
    PASS = "pass"


class MaoRule(Enum):
    """Offer rule applied to ARV before costs are deducted."""
    SIXTY_FIVE = "65%"
    SEVENTY = "70%"
    SEVENTY_FIVE = "75%"
    CUSTOM = "custom"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["MaoRule"]:
        """Convert "65%", "70", "custom" etc. to MaoRule."""
        if value is None:
            return None
        normalised = str(value).lower().strip()
        if normalised and normalised[-1].isdigit():
            normalised += "%"
        for member in cls:
            if member.value == normalised:
                return member
        return None

    @property
    def fixed_percent(self) -> Optional[float]:
        """Percentage embedded in the rule label, None for custom."""
        if self is MaoRule.CUSTOM:
            return None
        return float(self.value.rstrip("%"))


class ArvMethod(Enum):
    """How the final ARV figure was aggregated."""
    WEIGHTED = "weighted"
    AVERAGE = "average"


# =============================================================================
# Helpers
# =============================================================================


def _check_non_negative(owner: str, **values: Optional[float]) -> None:
    for name, value in values.items():
        if value is not None and value < 0:
            raise ValueError(f"{owner}.{name} must be non-negative, got {value}")


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


# =============================================================================
# Condition Data
# =============================================================================


@dataclass
class ImageAnalysis:
    """
    Condition assessment of a single photo.

    Produced by the external condition-assessment collaborator.
    """
    room_type: str = "uncertain"
    condition_score: Optional[float] = None  # 1-5
    confidence: Optional[float] = None  # 0-100
    renovation_indicators: List[str] = field(default_factory=list)
    damage_flags: List[str] = field(default_factory=list)
    # Boolean damage signals that were detected, e.g. "water-damage", "mold"
    damage_signals: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ImageAnalysis":
        return cls(
            room_type=data.get("room_type") or data.get("imageType") or "uncertain",
            condition_score=data.get("condition_score", data.get("conditionScore")),
            confidence=data.get("confidence"),
            renovation_indicators=list(
                data.get("renovation_indicators") or data.get("renovationIndicators") or []
            ),
            damage_flags=list(data.get("damage_flags") or data.get("damageFlags") or []),
            damage_signals=list(data.get("damage_signals") or data.get("damageSignals") or []),
        )


@dataclass
class ConditionScores:
    """
    Aggregated condition assessment for one property.

    Interior/exterior are on a 1-5 scale, overall on 1-10, renovation and
    damage risk on 0-100.
    """
    interior_score: float = 3.0
    exterior_score: float = 3.0
    overall_score: float = 5.0
    renovation_score: float = 0.0
    damage_risk_score: float = 0.0
    image_confidence: float = 0.0
    condition_category: ConditionCategory = ConditionCategory.MEDIUM
    renovation_indicators: List[str] = field(default_factory=list)
    damage_flags: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "interior_score": self.interior_score,
            "exterior_score": self.exterior_score,
            "overall_score": self.overall_score,
            "renovation_score": self.renovation_score,
            "damage_risk_score": self.damage_risk_score,
            "image_confidence": self.image_confidence,
            "condition_category": self.condition_category.value,
            "renovation_indicators": list(self.renovation_indicators),
            "damage_flags": list(self.damage_flags),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConditionScores":
        return cls(
            interior_score=float(data.get("interior_score", 3.0)),
            exterior_score=float(data.get("exterior_score", 3.0)),
            overall_score=float(data.get("overall_score", 5.0)),
            renovation_score=float(data.get("renovation_score", 0.0)),
            damage_risk_score=float(data.get("damage_risk_score", 0.0)),
            image_confidence=float(data.get("image_confidence", 0.0)),
            condition_category=(
                ConditionCategory.from_string(data.get("condition_category"))
                or ConditionCategory.MEDIUM
            ),
            renovation_indicators=list(data.get("renovation_indicators", [])),
            damage_flags=list(data.get("damage_flags", [])),
        )


# =============================================================================
# Properties
# =============================================================================


@dataclass
class SubjectProperty:
    """
    The subject property being evaluated.

    Size attributes are optional; missing data never disqualifies a comp,
    but negative values are rejected as caller bugs.
    """
    address: str
    latitude: float
    longitude: float

    beds: Optional[float] = None
    baths: Optional[float] = None
    square_footage: Optional[float] = None
    lot_size: Optional[float] = None
    year_built: Optional[int] = None
    property_type: str = ""

    asking_price: Optional[float] = None
    days_on_market: Optional[int] = None

    condition: Optional[ConditionScores] = None
    image_analyses: List[ImageAnalysis] = field(default_factory=list)

    # Persistence identity; defaults to the normalised address
    property_id: str = ""

    def __post_init__(self) -> None:
        _check_non_negative(
            "SubjectProperty",
            beds=self.beds,
            baths=self.baths,
            square_footage=self.square_footage,
            lot_size=self.lot_size,
            asking_price=self.asking_price,
            days_on_market=self.days_on_market,
        )

    @property
    def subject_id(self) -> str:
        """Key for the one authoritative analysis of this property."""
        return self.property_id or " ".join(self.address.lower().split())

    @property
    def category(self) -> str:
        """Normalised property type used for matching."""
        return normalise_property_type(self.property_type)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "property_id": self.subject_id,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "beds": self.beds,
            "baths": self.baths,
            "square_footage": self.square_footage,
            "lot_size": self.lot_size,
            "year_built": self.year_built,
            "property_type": self.property_type,
            "property_category": self.category,
            "asking_price": self.asking_price,
            "days_on_market": self.days_on_market,
            "condition": self.condition.to_dict() if self.condition else None,
        }


@dataclass
class ComparableSale:
    """
    A candidate recently-sold property used as valuation evidence.

    The first block of fields comes from the listing source. The scored
    fields at the end are only ever written by the engine; distance is
    always recomputed from coordinates, never taken from the source.
    """
    address: str
    latitude: float
    longitude: float

    beds: Optional[float] = None
    baths: Optional[float] = None
    square_footage: Optional[float] = None
    lot_size: Optional[float] = None
    year_built: Optional[int] = None
    property_type: str = ""

    sale_date: Optional[date] = None
    sale_price: Optional[float] = None
    list_price: Optional[float] = None
    listing_status: ListingStatus = ListingStatus.SOLD
    days_on_market: Optional[int] = None

    data_source: Optional[DataSource] = None
    source_id: str = ""

    # Condition evidence
    image_urls: List[str] = field(default_factory=list)
    condition_rating: Optional[float] = None  # 1-5
    image_confidence: Optional[float] = None  # 0-100
    renovation_indicators: List[str] = field(default_factory=list)
    damage_flags: List[str] = field(default_factory=list)
    condition_adjustment_percent: float = 0.0

    # Engine-computed
    distance_miles: Optional[float] = None
    distance_score: Optional[float] = None
    recency_score: Optional[float] = None
    sqft_score: Optional[float] = None
    bed_bath_score: Optional[float] = None
    year_built_score: Optional[float] = None
    condition_score: Optional[float] = None
    comp_score: Optional[float] = None
    adjusted_price: Optional[float] = None
    filtered_out: bool = False

    def __post_init__(self) -> None:
        _check_non_negative(
            "ComparableSale",
            beds=self.beds,
            baths=self.baths,
            square_footage=self.square_footage,
            lot_size=self.lot_size,
            sale_price=self.sale_price,
            list_price=self.list_price,
        )

    @property
    def category(self) -> str:
        """Normalised property type used for matching."""
        return normalise_property_type(self.property_type)

    @property
    def price(self) -> Optional[float]:
        """Best usable price: sale price, else list price, else None."""
        if self.sale_price is not None and self.sale_price > 0:
            return self.sale_price
        if self.list_price is not None and self.list_price > 0:
            return self.list_price
        return None

    @property
    def has_images(self) -> bool:
        return bool(self.image_urls)

    @property
    def dedupe_key(self) -> str:
        """Source identity, falling back to the normalised address."""
        return self.source_id or " ".join(self.address.lower().split())

    @property
    def comp_id(self) -> str:
        """Stable reference to this comp within a subject's comp set."""
        source = self.data_source.value if self.data_source else ""
        return f"{source}:{self.dedupe_key}"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "comp_id": self.comp_id,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "beds": self.beds,
            "baths": self.baths,
            "square_footage": self.square_footage,
            "lot_size": self.lot_size,
            "year_built": self.year_built,
            "property_type": self.property_type,
            "sale_date": self.sale_date.isoformat() if self.sale_date else None,
            "sale_price": self.sale_price,
            "list_price": self.list_price,
            "listing_status": self.listing_status.value,
            "days_on_market": self.days_on_market,
            "data_source": self.data_source.value if self.data_source else None,
            "source_id": self.source_id,
            "image_urls": list(self.image_urls),
            "condition_rating": self.condition_rating,
            "image_confidence": self.image_confidence,
            "renovation_indicators": list(self.renovation_indicators),
            "damage_flags": list(self.damage_flags),
            "condition_adjustment_percent": self.condition_adjustment_percent,
            "distance_miles": self.distance_miles,
            "distance_score": self.distance_score,
            "recency_score": self.recency_score,
            "sqft_score": self.sqft_score,
            "bed_bath_score": self.bed_bath_score,
            "year_built_score": self.year_built_score,
            "condition_score": self.condition_score,
            "comp_score": self.comp_score,
            "adjusted_price": self.adjusted_price,
            "filtered_out": self.filtered_out,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ComparableSale":
        return cls(
            address=data["address"],
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            beds=data.get("beds"),
            baths=data.get("baths"),
            square_footage=data.get("square_footage"),
            lot_size=data.get("lot_size"),
            year_built=data.get("year_built"),
            property_type=data.get("property_type") or "",
            sale_date=_parse_date(data.get("sale_date")),
            sale_price=data.get("sale_price"),
            list_price=data.get("list_price"),
            listing_status=(
                ListingStatus.from_string(data.get("listing_status")) or ListingStatus.SOLD
            ),
            days_on_market=data.get("days_on_market"),
            data_source=DataSource.from_string(data.get("data_source")),
            source_id=data.get("source_id") or "",
            image_urls=list(data.get("image_urls", [])),
            condition_rating=data.get("condition_rating"),
            image_confidence=data.get("image_confidence"),
            renovation_indicators=list(data.get("renovation_indicators", [])),
            damage_flags=list(data.get("damage_flags", [])),
            condition_adjustment_percent=float(data.get("condition_adjustment_percent") or 0.0),
            distance_miles=data.get("distance_miles"),
            distance_score=data.get("distance_score"),
            recency_score=data.get("recency_score"),
            sqft_score=data.get("sqft_score"),
            bed_bath_score=data.get("bed_bath_score"),
            year_built_score=data.get("year_built_score"),
            condition_score=data.get("condition_score"),
            comp_score=data.get("comp_score"),
            adjusted_price=data.get("adjusted_price"),
            filtered_out=bool(data.get("filtered_out", False)),
        )


# =============================================================================
# Search
# =============================================================================


@dataclass(frozen=True)
class MatchingCriteria:
    """Attribute tolerances applied by the matching filter."""
    area_type: AreaType = AreaType.SUBURBAN
    match_property_type: bool = True
    bed_tolerance: float = 1
    bath_tolerance: float = 1
    sqft_tolerance: float = 0.20  # relative
    lot_tolerance: float = 0.50  # relative
    year_tolerance: int = 10

    @property
    def lots_matter(self) -> bool:
        """Lot size is not a value driver in urban areas."""
        return self.area_type is not AreaType.URBAN

    def to_dict(self) -> dict:
        return {
            "area_type": self.area_type.value,
            "match_property_type": self.match_property_type,
            "bed_tolerance": self.bed_tolerance,
            "bath_tolerance": self.bath_tolerance,
            "sqft_tolerance": self.sqft_tolerance,
            "lot_tolerance": self.lot_tolerance if self.lots_matter else None,
            "year_tolerance": self.year_tolerance,
        }


@dataclass(frozen=True)
class SearchParams:
    """Radius band, time window and tolerances for one comp search."""
    radius: float
    min_radius: float
    max_radius: float
    preferred_months: int
    max_months: int
    matching_criteria: MatchingCriteria

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "radius": self.radius,
            "min_radius": self.min_radius,
            "max_radius": self.max_radius,
            "preferred_months": self.preferred_months,
            "max_months": self.max_months,
            "matching_criteria": self.matching_criteria.to_dict(),
        }


# =============================================================================
# Valuation
# =============================================================================


@dataclass
class ValuationInputs:
    """
    Validated cost assumptions for the MAO calculation.

    Out-of-range values raise ValidationError; nothing is clamped.
    """
    estimated_repairs: float = 0.0
    holding_cost: float = 0.0
    closing_cost: float = 0.0
    wholesale_fee: float = 0.0
    mao_rule: MaoRule = MaoRule.SEVENTY
    mao_rule_percent: Optional[float] = None

    def __post_init__(self) -> None:
        if not 0 <= self.estimated_repairs <= MAX_ESTIMATED_REPAIRS:
            raise ValidationError(
                "estimated_repairs",
                f"must be between 0 and {MAX_ESTIMATED_REPAIRS:,.0f}",
            )
        for name in ("holding_cost", "closing_cost", "wholesale_fee"):
            value = getattr(self, name)
            if not 0 <= value <= MAX_LINE_ITEM_COST:
                raise ValidationError(name, f"must be between 0 and {MAX_LINE_ITEM_COST:,.0f}")

        if self.mao_rule is MaoRule.CUSTOM:
            if self.mao_rule_percent is None:
                raise ValidationError("mao_rule_percent", "is required for a custom rule")
            if not MIN_CUSTOM_RULE_PERCENT <= self.mao_rule_percent <= MAX_CUSTOM_RULE_PERCENT:
                raise ValidationError(
                    "mao_rule_percent",
                    f"must be between {MIN_CUSTOM_RULE_PERCENT:.0f} and {MAX_CUSTOM_RULE_PERCENT:.0f}",
                )

    @property
    def rule_percent(self) -> float:
        """Offer rule as a fraction of ARV."""
        if self.mao_rule is MaoRule.CUSTOM:
            return self.mao_rule_percent / 100
        return self.mao_rule.fixed_percent / 100

    @property
    def total_fees(self) -> float:
        return self.estimated_repairs + self.holding_cost + self.closing_cost + self.wholesale_fee

    def to_dict(self) -> dict:
        return {
            "estimated_repairs": self.estimated_repairs,
            "holding_cost": self.holding_cost,
            "closing_cost": self.closing_cost,
            "wholesale_fee": self.wholesale_fee,
            "mao_rule": self.mao_rule.value,
            "mao_rule_percent": self.mao_rule_percent,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ValuationInputs":
        return cls(
            estimated_repairs=float(data.get("estimated_repairs", 0.0)),
            holding_cost=float(data.get("holding_cost", 0.0)),
            closing_cost=float(data.get("closing_cost", 0.0)),
            wholesale_fee=float(data.get("wholesale_fee", 0.0)),
            mao_rule=MaoRule.from_string(data.get("mao_rule")) or MaoRule.SEVENTY,
            mao_rule_percent=data.get("mao_rule_percent"),
        )


@dataclass
class MAOResult:
    """Maximum allowable offer with its cost breakdown (whole currency units)."""
    mao: int
    suggested_offer: int
    base_mao: int
    total_fees: int
    rule_percent: float
    breakdown: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "mao": self.mao,
            "suggested_offer": self.suggested_offer,
            "base_mao": self.base_mao,
            "total_fees": self.total_fees,
            "rule_percent": self.rule_percent,
            "breakdown": dict(self.breakdown),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MAOResult":
        return cls(
            mao=int(data["mao"]),
            suggested_offer=int(data["suggested_offer"]),
            base_mao=int(data["base_mao"]),
            total_fees=int(data["total_fees"]),
            rule_percent=float(data["rule_percent"]),
            breakdown=dict(data.get("breakdown", {})),
        )


@dataclass
class DealScore:
    """
    Composite deal quality score (0-100) and its five components.

    dom_score and demand_score are the two halves of market_score.
    """
    deal_score: float
    spread_score: float
    repair_score: float
    market_score: float
    area_score: float
    comp_strength_score: float
    dom_score: float = 0.0
    demand_score: float = 0.0
    used_neighborhood_proxy: bool = False

    def to_dict(self) -> dict:
        return {
            "deal_score": self.deal_score,
            "spread_score": self.spread_score,
            "repair_score": self.repair_score,
            "market_score": self.market_score,
            "area_score": self.area_score,
            "comp_strength_score": self.comp_strength_score,
            "dom_score": self.dom_score,
            "demand_score": self.demand_score,
            "used_neighborhood_proxy": self.used_neighborhood_proxy,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DealScore":
        return cls(
            deal_score=float(data["deal_score"]),
            spread_score=float(data["spread_score"]),
            repair_score=float(data["repair_score"]),
            market_score=float(data["market_score"]),
            area_score=float(data["area_score"]),
            comp_strength_score=float(data["comp_strength_score"]),
            dom_score=float(data.get("dom_score", 0.0)),
            demand_score=float(data.get("demand_score", 0.0)),
            used_neighborhood_proxy=bool(data.get("used_neighborhood_proxy", False)),
        )


@dataclass(frozen=True)
class RecommendationResult:
    """Categorical recommendation with its fixed rationale."""
    recommendation: Recommendation
    reason: str

    def to_dict(self) -> dict:
        return {"recommendation": self.recommendation.value, "reason": self.reason}


@dataclass
class AnalysisResult:
    """
    Complete analysis for one subject property.

    At most one is stored per subject; recomputation replaces it. When no
    ARV could be produced the valuation fields are None but the scored
    comps are still present for manual review.
    """
    subject_id: str
    arv: Optional[float]
    arv_method: Optional[ArvMethod]
    comps: List[ComparableSale]
    inputs: ValuationInputs

    mao: Optional[MAOResult] = None
    deal_score: Optional[DealScore] = None
    recommendation: Optional[Recommendation] = None
    recommendation_reason: str = ""
    confidence: int = 0

    condition_category: Optional[ConditionCategory] = None
    area_type: AreaType = AreaType.SUBURBAN
    search_radius: Optional[float] = None
    time_window_months: Optional[int] = None
    comps_found: int = 0

    notes: List[str] = field(default_factory=list)
    analysis_date: datetime = field(default_factory=datetime.utcnow)
    version: int = 1

    @property
    def has_valuation(self) -> bool:
        return self.arv is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "subject_id": self.subject_id,
            "arv": self.arv,
            "arv_method": self.arv_method.value if self.arv_method else None,
            "comps": [c.to_dict() for c in self.comps],
            "inputs": self.inputs.to_dict(),
            "mao": self.mao.to_dict() if self.mao else None,
            "deal_score": self.deal_score.to_dict() if self.deal_score else None,
            "recommendation": self.recommendation.value if self.recommendation else None,
            "recommendation_reason": self.recommendation_reason,
            "confidence": self.confidence,
            "condition_category": (
                self.condition_category.value if self.condition_category else None
            ),
            "area_type": self.area_type.value,
            "search_radius": self.search_radius,
            "time_window_months": self.time_window_months,
            "comps_found": self.comps_found,
            "notes": list(self.notes),
            "analysis_date": self.analysis_date.isoformat(),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AnalysisResult":
        recommendation = data.get("recommendation")
        arv_method = data.get("arv_method")
        return cls(
            subject_id=data["subject_id"],
            arv=data.get("arv"),
            arv_method=ArvMethod(arv_method) if arv_method else None,
            comps=[ComparableSale.from_dict(c) for c in data.get("comps", [])],
            inputs=ValuationInputs.from_dict(data.get("inputs", {})),
            mao=MAOResult.from_dict(data["mao"]) if data.get("mao") else None,
            deal_score=DealScore.from_dict(data["deal_score"]) if data.get("deal_score") else None,
            recommendation=Recommendation(recommendation) if recommendation else None,
            recommendation_reason=data.get("recommendation_reason", ""),
            confidence=int(data.get("confidence", 0)),
            condition_category=ConditionCategory.from_string(data.get("condition_category")),
            area_type=AreaType.from_string(data.get("area_type")) or AreaType.SUBURBAN,
            search_radius=data.get("search_radius"),
            time_window_months=data.get("time_window_months"),
            comps_found=int(data.get("comps_found", 0)),
            notes=list(data.get("notes", [])),
            analysis_date=datetime.fromisoformat(data["analysis_date"]),
            version=int(data.get("version", 1)),
        )
