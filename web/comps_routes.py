"""
Comp Engine Routes - JSON API over the valuation pipeline

Thin layer: requests are converted to engine models, the engine does the
work, and the one stored analysis per subject is served back.

Error mapping:
- Malformed MAO inputs or property values -> 400
- Unknown comp references, or no stored analysis or comps for a subject -> 404
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from deal_engine import (
    AreaType,
    ComparableSale,
    DealAnalyzer,
    ImageAnalysis,
    MaoRule,
    SubjectProperty,
    build_search_params,
    get_analysis_repository,
    get_comparable_repository,
    validate_mao_inputs,
)
from deal_engine.comp_engine import classify_area
from deal_engine.errors import AnalysisNotFoundError, ComparableNotFoundError, ValidationError
from utils.config import Config


logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/api/comps", tags=["comps"])


def get_analyzer() -> DealAnalyzer:
    """Dependency providing an analyzer bound to the shared repositories."""
    config = Config.load()
    return DealAnalyzer(
        repository=get_analysis_repository(config.analysis_store),
        comp_repository=get_comparable_repository(),
        default_rule=MaoRule.from_string(config.default_mao_rule) or MaoRule.SEVENTY,
    )


# =============================================================================
# Request Models
# =============================================================================

class ImageAnalysisInput(BaseModel):
    """Condition assessment of one photo."""
    room_type: str = "uncertain"
    condition_score: Optional[float] = None
    confidence: Optional[float] = None
    renovation_indicators: List[str] = []
    damage_flags: List[str] = []
    damage_signals: List[str] = []

    def to_analysis(self) -> ImageAnalysis:
        return ImageAnalysis.from_dict(self.model_dump())


class SubjectInput(BaseModel):
    """Property being valued."""
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
    property_id: str = ""
    image_analyses: List[ImageAnalysisInput] = []

    def to_subject(self) -> SubjectProperty:
        data = self.model_dump(exclude={"image_analyses"})
        return SubjectProperty(
            image_analyses=[a.to_analysis() for a in self.image_analyses],
            **data,
        )


class CompInput(BaseModel):
    """Candidate comparable sale."""
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
    days_on_market: Optional[int] = None
    data_source: Optional[str] = None
    source_id: str = ""
    image_urls: List[str] = []
    condition_rating: Optional[float] = None
    image_confidence: Optional[float] = None
    condition_adjustment_percent: float = 0.0
    image_analyses: List[ImageAnalysisInput] = []

    def to_comp(self) -> ComparableSale:
        return ComparableSale.from_dict(self.model_dump(exclude={"image_analyses"}))


class AreaInput(BaseModel):
    """Area type, or place types to classify it from."""
    area_type: Optional[str] = None
    place_types: List[str] = []

    def resolve_area_type(self) -> AreaType:
        if self.area_type:
            area_type = AreaType.from_string(self.area_type)
            if area_type is None:
                allowed = ", ".join(a.value for a in AreaType)
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid area_type: {self.area_type} (expected {allowed})",
                )
            return area_type
        return classify_area(self.place_types)


class SearchParamsRequest(AreaInput):
    square_footage: Optional[float] = None


class ScoreRequest(AreaInput):
    subject: SubjectInput
    comps: List[CompInput]


class AnalyzeRequest(AreaInput):
    subject: SubjectInput
    comps: List[CompInput]
    # Raw MAO inputs, camelCase or snake_case
    inputs: Optional[Dict[str, Any]] = None


class AnalyzeSelectedRequest(AreaInput):
    subject: SubjectInput
    # comp_id values from the subject's stored comps
    comp_ids: List[str]
    inputs: Optional[Dict[str, Any]] = None


class MaoRequest(BaseModel):
    inputs: Dict[str, Any] = {}


# =============================================================================
# Helpers
# =============================================================================


def _build_subject(subject: SubjectInput) -> SubjectProperty:
    try:
        return subject.to_subject()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _build_comps(
    analyzer: DealAnalyzer,
    subject: SubjectProperty,
    comps: List[CompInput],
) -> List[ComparableSale]:
    built = []
    for comp_input in comps:
        try:
            comp = comp_input.to_comp()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"{comp_input.address}: {e}")
        analyses = [a.to_analysis() for a in comp_input.image_analyses]
        built.append(analyzer.apply_comp_condition(subject, comp, analyses))
    return built


# =============================================================================
# Routes
# =============================================================================


@router.post("/search-params")
async def search_params(request_data: SearchParamsRequest):
    """Radius, time window and matching tolerances for a subject."""
    area_type = request_data.resolve_area_type()
    params = build_search_params(area_type, request_data.square_footage)
    return JSONResponse({"area_type": area_type.value, **params.to_dict()})


@router.post("/score")
async def score(
    request_data: ScoreRequest,
    analyzer: DealAnalyzer = Depends(get_analyzer),
):
    """
    Filter and rank candidate comps.

    If no candidate meets the matching criteria, all are returned with a
    zero score and filtered_out=true for manual review.
    """
    area_type = request_data.resolve_area_type()
    subject = _build_subject(request_data.subject)
    comps = _build_comps(analyzer, subject, request_data.comps)

    search = analyzer.find_comps(subject, comps, area_type)

    return JSONResponse({
        "subject_id": subject.subject_id,
        "area_type": area_type.value,
        "search_params": search.params.to_dict(),
        "comps": [c.to_dict() for c in search.comps],
        "eligible_count": search.eligible_count,
        "all_filtered_out": search.all_filtered_out,
        "notes": search.notes,
    })


@router.post("/analyze")
async def analyze(
    request_data: AnalyzeRequest,
    analyzer: DealAnalyzer = Depends(get_analyzer),
):
    """
    Full valuation: score comps, ARV, MAO, Deal Score and recommendation.

    The result replaces any earlier analysis stored for the subject.
    """
    area_type = request_data.resolve_area_type()
    try:
        inputs = validate_mao_inputs(request_data.inputs, analyzer.default_rule)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    subject = _build_subject(request_data.subject)
    comps = _build_comps(analyzer, subject, request_data.comps)

    search = analyzer.find_comps(subject, comps, area_type)
    result = analyzer.analyze(
        subject,
        analyzer.select_comps(search),
        inputs=inputs,
        area_type=area_type,
        search=search,
    )

    logger.info(
        "Analysed %s: arv=%s recommendation=%s",
        subject.subject_id,
        result.arv,
        result.recommendation.value if result.recommendation else None,
    )
    return JSONResponse(result.to_dict())


@router.post("/analyze-selected")
async def analyze_selected(
    request_data: AnalyzeSelectedRequest,
    analyzer: DealAnalyzer = Depends(get_analyzer),
):
    """
    Re-value a subject from comps picked out of its latest search.

    Comps are referenced by the comp_id served with /score and
    GET /{subject_id}/comps.
    """
    area_type = request_data.resolve_area_type()
    subject = _build_subject(request_data.subject)

    try:
        inputs = validate_mao_inputs(request_data.inputs, analyzer.default_rule)
        result = analyzer.analyze_selected(
            subject,
            request_data.comp_ids,
            inputs=inputs,
            area_type=area_type,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ComparableNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return JSONResponse(result.to_dict())


@router.get("/{subject_id}/comps")
async def get_comps(
    subject_id: str,
    analyzer: DealAnalyzer = Depends(get_analyzer),
):
    """Comps found by the subject's latest search, in rank order."""
    comps = analyzer.comp_repository.for_subject(subject_id) if analyzer.comp_repository else []
    if not comps:
        raise HTTPException(status_code=404, detail="No comps stored for subject")
    return JSONResponse({
        "subject_id": subject_id,
        "comps": [c.to_dict() for c in comps],
    })


@router.get("/{subject_id}/analysis")
async def get_analysis(
    subject_id: str,
    analyzer: DealAnalyzer = Depends(get_analyzer),
):
    """Stored analysis for a subject."""
    analysis = analyzer.repository.get(subject_id)
    if analysis is None:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return JSONResponse(analysis.to_dict())


@router.post("/{subject_id}/mao")
async def recalculate_mao(
    subject_id: str,
    request_data: MaoRequest,
    analyzer: DealAnalyzer = Depends(get_analyzer),
):
    """
    Recompute the MAO of a stored analysis with new cost assumptions.

    Fields left out of the request keep their stored values.
    """
    try:
        analysis = analyzer.recalculate_mao(subject_id, request_data.inputs)
    except AnalysisNotFoundError:
        raise HTTPException(status_code=404, detail="Analysis not found")
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return JSONResponse({
        "subject_id": analysis.subject_id,
        "arv": analysis.arv,
        "inputs": analysis.inputs.to_dict(),
        "mao": analysis.mao.to_dict() if analysis.mao else None,
        "version": analysis.version,
    })
