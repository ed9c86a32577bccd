"""Models package."""

from speaking_coach.models.analysis_record import AnalysisRecord
from speaking_coach.models.schemas import (
    AnalysisOutcome,
    AnalysisRequest,
    AnalysisSource,
    AnalysisStage,
    AnalysisType,
    AnalysisValidationError,
    VisualizationDocument,
)

__all__ = [
    "AnalysisRecord",
    "AnalysisOutcome",
    "AnalysisRequest",
    "AnalysisSource",
    "AnalysisStage",
    "AnalysisType",
    "AnalysisValidationError",
    "VisualizationDocument",
]
