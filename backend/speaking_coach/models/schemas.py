"""
Pydantic models for the video analysis pipeline.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field


class AnalysisValidationError(ValueError):
    """Raised when a request or payload fails validation (never retried)."""


class AnalysisType(str, Enum):
    """Output format a user can request for a video."""
    EXECUTIVE_SUMMARY = "executive_summary"
    STRENGTHS_FAILURES = "strengths_failures"
    TIMEWISE_ANALYSIS = "timewise_analysis"
    ACTION_FIXES = "action_fixes"
    VISUALIZATIONS = "visualizations"

    @property
    def label(self) -> str:
        return ANALYSIS_TYPE_INFO[self][0]

    @property
    def description(self) -> str:
        return ANALYSIS_TYPE_INFO[self][1]

    @property
    def expects_json(self) -> bool:
        """Whether the model must answer with a machine-parseable document."""
        return self is AnalysisType.VISUALIZATIONS


ANALYSIS_TYPE_INFO: dict[AnalysisType, tuple[str, str]] = {
    AnalysisType.EXECUTIVE_SUMMARY: (
        "Global Summary",
        "High-level verdict with key metrics and overall assessment",
    ),
    AnalysisType.STRENGTHS_FAILURES: (
        "Strengths & Failures",
        "What works well and what needs improvement",
    ),
    AnalysisType.TIMEWISE_ANALYSIS: (
        "Timewise Analysis",
        "5-second breakdown of your presentation timeline",
    ),
    AnalysisType.ACTION_FIXES: (
        "Action Fixes",
        "Specific, actionable steps to improve your delivery",
    ),
    AnalysisType.VISUALIZATIONS: (
        "Visualizations",
        "Performance patterns and impact analysis",
    ),
}


class AnalysisSource(str, Enum):
    """Which services produced an analysis record.

    - specialized_only: provider output only
    - model_direct: general-purpose model on the raw video (fallback path)
    - hybrid: provider payload turned into feedback by the model
    """
    SPECIALIZED_ONLY = "specialized_only"
    MODEL_DIRECT = "model_direct"
    HYBRID = "hybrid"


class AnalysisStage(str, Enum):
    """Stage of the analysis request lifecycle."""
    CACHE_CHECK = "cache_check"
    RAW_PAYLOAD_CHECK = "raw_payload_check"
    PROVIDER_ATTEMPT = "provider_attempt"
    SKIP_PROVIDER = "skip_provider"
    PROMPT_BUILD = "prompt_build"
    MODEL_CALL = "model_call"
    PERSIST = "persist"


class AnalysisRequest(BaseModel):
    """One analysis request for a (owner, video, type) triple.

    Constructed per incoming call, never persisted directly.
    """

    model_config = ConfigDict(frozen=True)

    owner_id: str = Field(min_length=1)
    video_ref: str = Field(min_length=1)
    analysis_type: AnalysisType

    @classmethod
    def parse(cls, owner_id: str, video_ref: str, analysis_type: str) -> "AnalysisRequest":
        """
        Build a request from untrusted input.

        Raises:
            AnalysisValidationError: If an identifier is blank or the
                analysis type is not one of the known values
        """
        try:
            return cls(
                owner_id=owner_id.strip(),
                video_ref=video_ref.strip(),
                analysis_type=analysis_type,
            )
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors())
            raise AnalysisValidationError(f"Invalid analysis request: {fields}") from e


class AnalysisOutcome(BaseModel):
    """Result of one orchestration run."""

    feedback: str
    record_id: str
    analysis_type: AnalysisType
    cached: bool = False
    analysis_source: AnalysisSource


# ═══════════════════════════════════════════════════════════════════════════
# API schemas
# ═══════════════════════════════════════════════════════════════════════════


class AnalyzeBody(BaseModel):
    """Inbound analyze call.

    Fields default to empty strings so that missing values are reported
    through the regular validation error response.
    """

    owner_id: str = ""
    video_ref: str = ""
    analysis_type: str = ""


class AnalyzeResponse(BaseModel):
    """Response of the analyze call (success or failure)."""

    success: bool
    feedback: str | None = None
    record_id: str | None = None
    analysis_type: AnalysisType | None = None
    cached: bool | None = None
    analysis_source: AnalysisSource | None = None
    error: str | None = None
    code: str | None = None


class AnalysisTypeInfo(BaseModel):
    """Catalogue entry for an analysis type."""

    id: AnalysisType
    label: str
    description: str

    @computed_field
    @property
    def json_output(self) -> bool:
        """True if feedback of this type is a JSON document."""
        return self.id.expects_json


# ═══════════════════════════════════════════════════════════════════════════
# Visualization document
# ═══════════════════════════════════════════════════════════════════════════


class MismatchPoint(BaseModel):
    """Expected vs actual delivery intensity at one moment."""

    time: str
    timeSeconds: float
    expected: float
    actual: float
    gap: float
    status: Literal["aligned", "weak_gap", "mismatch"]
    transcript: str = ""


class EnergyPoint(BaseModel):
    """Energy levels of each modality at one moment."""

    time: str
    timeSeconds: float
    audioEnergy: float
    bodyEnergy: float
    faceEnergy: float
    handEnergy: float


class OpportunityPoint(BaseModel):
    """Moment placed on the opportunity map."""

    time: str
    expected: float
    actual: float
    gap: float
    status: str
    quadrant: str
    transcript: str = ""


class VisualizationDocument(BaseModel):
    """Machine-parseable output of the visualizations analysis type."""

    mismatchTimeline: list[MismatchPoint]
    energyFusion: list[EnergyPoint]
    opportunityMap: list[OpportunityPoint]
    interpretation: str = Field(min_length=1)
