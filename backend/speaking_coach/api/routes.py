"""
HTTP API routes for video analysis.

Provides endpoints for:
- Requesting an analysis of a video (cached per analysis type)
- Listing available analysis types
"""

import logging
from collections.abc import Callable

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from speaking_coach.config import get_settings
from speaking_coach.database import get_session_maker
from speaking_coach.models.schemas import (
    AnalysisRequest,
    AnalysisType,
    AnalysisTypeInfo,
    AnalyzeBody,
    AnalyzeResponse,
)
from speaking_coach.services.analysis_store import AnalysisStore
from speaking_coach.services.error_classifier import ErrorCategory, ErrorClassifier
from speaking_coach.services.pipeline import AnalysisOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["analysis"])

OrchestratorFactory = Callable[[], AnalysisOrchestrator]


def get_orchestrator_factory() -> OrchestratorFactory:
    """
    Dependency returning a factory for request-scoped orchestrators.

    Construction is deferred so configuration errors surface as
    regular classified error responses.
    """

    def build() -> AnalysisOrchestrator:
        store = AnalysisStore(get_session_maker())
        return AnalysisOrchestrator.from_settings(get_settings(), store)

    return build


@router.post("/analyze", response_model=AnalyzeResponse, response_model_exclude_none=True)
async def analyze_video(
    body: AnalyzeBody,
    orchestrator_factory: OrchestratorFactory = Depends(get_orchestrator_factory),
):
    """
    Analyze a video for one analysis type.

    Returns stored feedback when the same owner, video and type were
    analyzed before (cached=true), otherwise runs the pipeline.

    Args:
        body: AnalyzeBody with owner_id, video_ref and analysis_type

    Returns:
        AnalyzeResponse on success, or {success: false, error, code}
        with the status code of the error category
    """
    try:
        request = AnalysisRequest.parse(body.owner_id, body.video_ref, body.analysis_type)
        async with orchestrator_factory() as orchestrator:
            outcome = await orchestrator.analyze(request)

    except Exception as e:
        category = ErrorClassifier.classify(e)
        if category == ErrorCategory.VALIDATION:
            logger.warning(f"Rejected analyze request: {e}")
        else:
            logger.exception(f"Analyze request failed ({category.value})")

        status_code, content = ErrorClassifier.to_response(e)
        return JSONResponse(status_code=status_code, content=content)

    return AnalyzeResponse(
        success=True,
        feedback=outcome.feedback,
        record_id=outcome.record_id,
        analysis_type=outcome.analysis_type,
        cached=outcome.cached,
        analysis_source=outcome.analysis_source,
    )


@router.get("/analysis-types", response_model=list[AnalysisTypeInfo])
async def list_analysis_types() -> list[AnalysisTypeInfo]:
    """
    List analysis types with labels for display.

    Returns:
        One entry per analysis type
    """
    return [
        AnalysisTypeInfo(id=t, label=t.label, description=t.description)
        for t in AnalysisType
    ]
