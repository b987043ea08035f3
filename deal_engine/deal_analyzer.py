"""
Deal Analyzer - Integrated Comp Engine Pipeline

Runs the full valuation for a subject property: comp scoring, ARV,
repair auto-estimate, MAO, Deal Score and recommendation, then stores
the one authoritative AnalysisResult for the subject.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from utils.formatting import format_currency, format_miles, format_percent

from .comp_engine import (
    AnalysisResult,
    AreaType,
    ARVEstimator,
    ComparableSale,
    ConditionScores,
    DealContext,
    ImageAnalysis,
    MaoRule,
    SearchParams,
    SubjectProperty,
    ValuationInputs,
    build_search_params,
    calculate_mao,
    compose_deal_score,
    recommend,
    validate_mao_inputs,
)
from .comp_engine.scoring import CompScorer
from .condition import (
    aggregate_image_analyses,
    align_room_types,
    condition_rating,
    determine_condition_category,
    estimate_repairs_from_condition,
    room_condition_adjustment,
)
from .errors import ComparableNotFoundError, ValidationError
from .repository import AnalysisRepository, ComparableRepository


logger = logging.getLogger(__name__)


# Returns a 0-100 rating, or None when no rating is available
NeighborhoodRater = Callable[[SubjectProperty], Optional[float]]


# =============================================================================
# Configuration
# =============================================================================

MIN_RECOMMENDED_COMPS = 3
MAX_SELECTED_COMPS = 5
MAX_CONFIDENCE_COMPS = 5

# Confidence = base + comp coverage + photo confidence
CONFIDENCE_BASE = 40
CONFIDENCE_COMP_POINTS = 30
CONFIDENCE_IMAGE_POINTS = 30


@dataclass
class CompSearchResult:
    """Scored comps for a subject and the parameters used to find them."""
    params: SearchParams
    comps: List[ComparableSale]
    candidates: int = 0
    notes: List[str] = field(default_factory=list)

    @property
    def eligible_count(self) -> int:
        return sum(1 for c in self.comps if not c.filtered_out)

    @property
    def all_filtered_out(self) -> bool:
        return bool(self.comps) and self.eligible_count == 0


class DealAnalyzer:
    """
    Complete deal analysis for a subject property.

    Pipeline order:
    1. SCORE - Filter and rank candidate comps
    2. VALUE - ARV from the chosen comps
    3. OFFER - Repairs (auto-estimated if not supplied) and MAO
    4. SCORE DEAL - Deal Score from spread, repairs, market, area, comps
    5. RECOMMEND - Category and rationale, plus confidence
    6. STORE - Upsert the result for the subject
    """

    def __init__(
        self,
        reference_date: date = None,
        neighborhood_rater: Optional[NeighborhoodRater] = None,
        repository: Optional[AnalysisRepository] = None,
        comp_repository: Optional[ComparableRepository] = None,
        default_rule: MaoRule = MaoRule.SEVENTY,
    ):
        """
        Initialize analyzer.

        Args:
            reference_date: Date to measure sale recency from (default: today)
            neighborhood_rater: Neighbourhood-rating collaborator
            repository: Where analyses are stored (None: not stored)
            comp_repository: Where each subject's latest comp set is kept
            default_rule: MAO rule when inputs are not supplied
        """
        self._reference_date = reference_date or date.today()
        self._neighborhood_rater = neighborhood_rater
        self._repository = repository
        self._comp_repository = comp_repository
        self._default_rule = default_rule
        self._scorer = CompScorer(reference_date=self._reference_date)
        self._estimator = ARVEstimator()

    @property
    def repository(self) -> Optional[AnalysisRepository]:
        return self._repository

    @property
    def comp_repository(self) -> Optional[ComparableRepository]:
        return self._comp_repository

    @property
    def default_rule(self) -> MaoRule:
        return self._default_rule

    # =========================================================================
    # Comp Search
    # =========================================================================

    def find_comps(
        self,
        subject: SubjectProperty,
        candidates: List[ComparableSale],
        area_type: AreaType = AreaType.SUBURBAN,
    ) -> CompSearchResult:
        """
        Filter and rank candidate comps for a subject.

        Args:
            subject: The property being evaluated
            candidates: Comps from acquisition (distance is recomputed)
            area_type: Area classification of the subject

        Returns:
            CompSearchResult; if no candidate passes matching, every comp
            is returned with a zero score and filtered_out=True
        """
        params = build_search_params(area_type, subject.square_footage)
        scored = self._scorer.score_comps(subject, candidates, params.matching_criteria)

        if self._comp_repository is not None:
            self._comp_repository.replace_all(subject.subject_id, scored)

        result = CompSearchResult(params=params, comps=scored, candidates=len(candidates))
        result.notes.append(
            f"Searched within {format_miles(params.radius)} over {params.preferred_months} months"
        )
        if result.all_filtered_out:
            result.notes.append(
                "No comps met the matching criteria; showing all candidates for manual review"
            )
        elif scored and result.eligible_count < MIN_RECOMMENDED_COMPS:
            result.notes.append(
                f"Only {result.eligible_count} comparable sales found (3-5 recommended)"
            )
        return result

    @staticmethod
    def select_comps(
        search: CompSearchResult,
        limit: int = MAX_SELECTED_COMPS,
    ) -> List[ComparableSale]:
        """Top-ranked eligible comps for valuation (empty if none passed matching)."""
        return [c for c in search.comps if not c.filtered_out][:limit]

    def apply_comp_condition(
        self,
        subject: SubjectProperty,
        comp: ComparableSale,
        comp_analyses: Sequence[ImageAnalysis],
    ) -> ComparableSale:
        """
        Seed a comp's condition data from its photo assessments.

        Sets the 1-5 condition rating, and the condition adjustment from a
        room-by-room comparison when the subject has photo assessments.
        """
        if not comp_analyses:
            return comp

        scores = aggregate_image_analyses(comp_analyses)
        adjustment = comp.condition_adjustment_percent
        if subject.image_analyses:
            comparisons = align_room_types(subject.image_analyses, comp_analyses)
            if comparisons:
                adjustment = room_condition_adjustment(comparisons)

        return replace(
            comp,
            condition_rating=condition_rating(scores),
            image_confidence=scores.image_confidence,
            renovation_indicators=scores.renovation_indicators,
            damage_flags=scores.damage_flags,
            condition_adjustment_percent=adjustment,
        )

    # =========================================================================
    # Analysis
    # =========================================================================

    def analyze(
        self,
        subject: SubjectProperty,
        comps: List[ComparableSale],
        inputs: Optional[ValuationInputs] = None,
        area_type: AreaType = AreaType.SUBURBAN,
        search: Optional[CompSearchResult] = None,
    ) -> AnalysisResult:
        """
        Value a subject property from the chosen comps.

        Args:
            subject: The property being evaluated
            comps: Comps chosen for valuation (1-5, 3-5 recommended)
            inputs: Validated MAO inputs (default: no costs, default rule)
            area_type: Area classification of the subject
            search: The comp search that produced the comps, if any

        Returns:
            AnalysisResult. When no ARV can be produced, MAO, deal score
            and recommendation are None but the comps are still returned.
        """
        inputs = inputs or ValuationInputs(mao_rule=self._default_rule)
        notes: List[str] = list(search.notes) if search else []

        if len(comps) < MIN_RECOMMENDED_COMPS:
            logger.warning(
                "Only %d comps selected for %s; analysis may be less accurate",
                len(comps), subject.address,
            )
            if search is None and comps:
                notes.append(f"Only {len(comps)} comps selected (3-5 recommended)")

        condition = subject.condition
        if condition is None and subject.image_analyses:
            condition = aggregate_image_analyses(subject.image_analyses)

        estimate = self._estimator.estimate(subject, comps)

        result = AnalysisResult(
            subject_id=subject.subject_id,
            arv=None,
            arv_method=None,
            comps=estimate.adjusted_comps or list(comps) or (list(search.comps) if search else []),
            inputs=inputs,
            area_type=area_type,
            search_radius=search.params.radius if search else None,
            time_window_months=search.params.preferred_months if search else None,
            comps_found=search.candidates if search else len(comps),
            analysis_date=datetime.utcnow(),
        )

        if not estimate.is_available:
            notes.append("Could not calculate ARV: no comp has a usable sale price")
            result.notes = notes
            result.confidence = self._calculate_confidence(0, condition)
            return self._store(result)

        arv = estimate.arv

        # Auto-estimate repairs from photo condition when none were supplied
        if not inputs.estimated_repairs and condition is not None:
            estimated = estimate_repairs_from_condition(arv, condition)
            if estimated:
                inputs = replace(inputs, estimated_repairs=float(estimated))
                notes.append(
                    f"Repairs estimated at {format_currency(estimated, 'USD')} "
                    f"from {condition.condition_category.value} condition"
                )

        mao = calculate_mao(arv, inputs)

        context = DealContext(
            arv=arv,
            estimated_repairs=inputs.estimated_repairs,
            area_type=area_type,
            days_on_market=subject.days_on_market,
            neighborhood_rating=self._rate_neighborhood(subject),
        )
        deal_score = compose_deal_score(subject, context, estimate.comps_used)
        recommendation = recommend(deal_score)

        result.arv = round(arv, 2)
        result.arv_method = estimate.method
        result.inputs = inputs
        result.mao = mao
        result.deal_score = deal_score
        result.recommendation = recommendation.recommendation
        result.recommendation_reason = recommendation.reason
        result.condition_category = (
            condition.condition_category
            if condition is not None
            else determine_condition_category(inputs.estimated_repairs, arv)
        )
        result.confidence = self._calculate_confidence(len(comps), condition)
        result.notes = notes + self._generate_notes(subject, result, estimate.outliers_removed)

        return self._store(result)

    def analyze_selected(
        self,
        subject: SubjectProperty,
        comp_ids: Sequence[str],
        inputs: Optional[ValuationInputs] = None,
        area_type: AreaType = AreaType.SUBURBAN,
    ) -> AnalysisResult:
        """
        Value a subject from comps hand-picked out of its latest search.

        Args:
            subject: The property being evaluated
            comp_ids: comp_id references from the subject's stored comps

        Raises:
            ValidationError: Unless 1-5 distinct comps are referenced
            ComparableNotFoundError: If a reference is not in the comp set
        """
        if self._comp_repository is None:
            raise RuntimeError("analyze_selected requires a comp repository")

        if not 1 <= len(comp_ids) <= MAX_SELECTED_COMPS:
            raise ValidationError(
                "comp_ids", f"must reference between 1 and {MAX_SELECTED_COMPS} comps"
            )
        if len(set(comp_ids)) != len(comp_ids):
            raise ValidationError("comp_ids", "must not repeat a comp")

        selected = []
        missing = []
        for comp_id in comp_ids:
            comp = self._comp_repository.get_by_id(subject.subject_id, comp_id)
            if comp is None:
                missing.append(comp_id)
            else:
                selected.append(comp)
        if missing:
            raise ComparableNotFoundError(subject.subject_id, missing)

        return self.analyze(subject, selected, inputs=inputs, area_type=area_type)

    def recalculate_mao(
        self,
        subject_id: str,
        inputs: Union[ValuationInputs, Mapping[str, Any]],
    ) -> AnalysisResult:
        """
        Recompute only the MAO of a stored analysis with new inputs.

        Args:
            subject_id: Subject key
            inputs: Complete ValuationInputs, or a raw payload whose fields
                are applied on top of the stored inputs

        Raises:
            AnalysisNotFoundError: If no analysis is stored for the subject
            ValidationError: If the payload is malformed or out of range
        """
        if self._repository is None:
            raise RuntimeError("recalculate_mao requires a repository")

        def change(existing: AnalysisResult) -> AnalysisResult:
            if isinstance(inputs, ValuationInputs):
                updated = inputs
            else:
                updated = validate_mao_inputs(inputs, self._default_rule, base=existing.inputs)
            return replace(
                existing,
                inputs=updated,
                mao=calculate_mao(existing.arv, updated),
                analysis_date=datetime.utcnow(),
            )

        return self._repository.update(subject_id, change)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _store(self, result: AnalysisResult) -> AnalysisResult:
        if self._repository is None:
            return result
        return self._repository.upsert(result)

    def _rate_neighborhood(self, subject: SubjectProperty) -> Optional[float]:
        """Ask the rating collaborator; any failure means the proxy is used."""
        if self._neighborhood_rater is None:
            return None
        try:
            return self._neighborhood_rater(subject)
        except Exception as e:
            logger.warning("Neighbourhood rating unavailable for %s: %s", subject.address, e)
            return None

    @staticmethod
    def _calculate_confidence(comp_count: int, condition: Optional[ConditionScores]) -> int:
        image_confidence = condition.image_confidence if condition else 0.0
        coverage = min(comp_count, MAX_CONFIDENCE_COMPS) / MAX_CONFIDENCE_COMPS
        score = (
            CONFIDENCE_BASE
            + coverage * CONFIDENCE_COMP_POINTS
            + (image_confidence / 100) * CONFIDENCE_IMAGE_POINTS
        )
        return min(100, int(score + 0.5))

    @staticmethod
    def _generate_notes(
        subject: SubjectProperty,
        result: AnalysisResult,
        outliers_removed: int,
    ) -> List[str]:
        """Generate analysis notes."""
        notes = []

        if subject.asking_price and result.arv:
            spread = (result.arv - subject.asking_price) / subject.asking_price * 100
            if spread >= 0:
                notes.append(f"ARV is {format_percent(spread)} above asking price")
            else:
                notes.append(f"Asking price is {format_percent(abs(spread))} above ARV")

        if outliers_removed:
            notes.append(f"{outliers_removed} comp(s) excluded as price outliers")

        if result.mao is not None:
            if result.mao.mao <= 0:
                notes.append("Costs exceed the offer rule: no positive offer supports this deal")
            elif subject.asking_price and result.mao.mao < subject.asking_price:
                notes.append(
                    f"MAO {format_currency(result.mao.mao, 'USD')} is below asking price "
                    f"{format_currency(int(subject.asking_price), 'USD')}"
                )

        if result.deal_score is not None and result.deal_score.used_neighborhood_proxy:
            notes.append("Area score estimated from area type and price tier")

        return notes
