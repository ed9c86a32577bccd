"""
Analysis orchestrator.

Runs one analysis request through its lifecycle:

    CACHE_CHECK -> RAW_PAYLOAD_CHECK -> (PROVIDER_ATTEMPT | SKIP_PROVIDER)
        -> PROMPT_BUILD -> MODEL_CALL -> PERSIST

Any stage may fail, raising PipelineError with the original
cause attached. The only write is the final insert, so a failed run
leaves nothing behind.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable
from typing import TypeVar

import httpx

from speaking_coach.config import Settings, is_provider_enabled
from speaking_coach.logging_config import PERF_LOGGER_NAME
from speaking_coach.models.analysis_record import AnalysisRecord
from speaking_coach.models.schemas import (
    AnalysisOutcome,
    AnalysisRequest,
    AnalysisSource,
    AnalysisStage,
    AnalysisType,
)
from speaking_coach.services.ai_clients import (
    AIClientError,
    GeminiClient,
    LanguageModel,
    VideoAnalyzer,
    VideoAnalyzerClient,
)
from speaking_coach.services.analysis_store import AnalysisStore, RecordConflictError
from speaking_coach.services.prompt_registry import PromptTemplateRegistry
from speaking_coach.services.video_source import LocalVideoSource, VideoSource
from speaking_coach.utils.media_utils import guess_video_mime_type

logger = logging.getLogger(__name__)
perf_logger = logging.getLogger(PERF_LOGGER_NAME)

T = TypeVar("T")

# Analyzer failures that trigger the direct model path
PROVIDER_FAILURES = (AIClientError, httpx.HTTPError, asyncio.TimeoutError, ConnectionError)


class PipelineError(Exception):
    """
    Pipeline stage error with context.

    Attributes:
        stage: Lifecycle stage where error occurred
        message: Error description
        cause: Original exception (if any)
    """

    def __init__(
        self,
        stage: AnalysisStage,
        message: str,
        cause: Exception | None = None,
    ):
        self.stage = stage
        self.message = message
        self.cause = cause
        super().__init__(f"[{stage.value}] {message}")


class _VideoBytes:
    """Lazily fetched video content, read at most once per request."""

    def __init__(self, source: VideoSource, video_ref: str):
        self.source = source
        self.video_ref = video_ref
        self._data: bytes | None = None

    async def get(self) -> bytes:
        if self._data is None:
            self._data = await self.source.read(self.video_ref)
        return self._data


class AnalysisOrchestrator:
    """
    Coordinates cache, analyzer, prompt registry, model and store.

    All collaborators are injected; from_settings() builds the real ones.
    The analyzer is None when the provider is disabled.

    Example:
        orchestrator = AnalysisOrchestrator.from_settings(settings, AnalysisStore(session_maker))
        async with orchestrator:
            outcome = await orchestrator.analyze(request)
    """

    def __init__(
        self,
        store: AnalysisStore,
        model: LanguageModel,
        registry: PromptTemplateRegistry,
        video_source: VideoSource,
        analyzer: VideoAnalyzer | None = None,
        default_mime_type: str = "video/mp4",
    ):
        """
        Initialize orchestrator.

        Args:
            store: Analysis record store
            model: General-purpose language model
            registry: Prompt templates per analysis type
            video_source: Resolver of video bytes
            analyzer: Specialized analyzer, None if disabled
            default_mime_type: Media type for unknown extensions
        """
        self.store = store
        self.model = model
        self.registry = registry
        self.video_source = video_source
        self.analyzer = analyzer
        self.default_mime_type = default_mime_type

    @classmethod
    def from_settings(cls, settings: Settings, store: AnalysisStore) -> "AnalysisOrchestrator":
        """
        Build the orchestrator with real clients.

        Args:
            settings: Application settings (read once)
            store: Analysis record store

        Returns:
            Configured orchestrator

        Raises:
            ConfigurationError: Missing model credentials or prompt templates
        """
        registry = PromptTemplateRegistry.from_settings(settings)
        model = GeminiClient.from_settings(settings)
        analyzer = None
        if is_provider_enabled(settings):
            analyzer = VideoAnalyzerClient.from_settings(settings)

        return cls(
            store=store,
            model=model,
            registry=registry,
            video_source=LocalVideoSource.from_settings(settings),
            analyzer=analyzer,
            default_mime_type=settings.default_mime_type,
        )

    async def __aenter__(self) -> "AnalysisOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close owned clients."""
        await self.model.close()
        if self.analyzer is not None:
            await self.analyzer.close()

    # ═══════════════════════════════════════════════════════════════════════════
    # Request lifecycle
    # ═══════════════════════════════════════════════════════════════════════════

    async def analyze(self, request: AnalysisRequest) -> AnalysisOutcome:
        """
        Produce feedback for one (owner, video, analysis type) request.

        Args:
            request: Validated analysis request

        Returns:
            AnalysisOutcome with feedback, record id and cached flag

        Raises:
            PipelineError: If any stage fails (cause attached)
        """
        start_time = time.time()
        analysis_type = request.analysis_type
        logger.info(
            f"Analysis request: owner={request.owner_id}, "
            f"video={request.video_ref}, type={analysis_type.value}"
        )

        # 1. Cache check
        existing = await self._run_stage(
            AnalysisStage.CACHE_CHECK,
            self.store.find_cached(request.owner_id, request.video_ref, analysis_type),
        )
        if existing is not None:
            logger.info(f"Cache hit: {existing.id} ({analysis_type.value})")
            return self._respond(existing, cached=True, start_time=start_time)

        video = _VideoBytes(self.video_source, request.video_ref)
        mime_type = guess_video_mime_type(request.video_ref, self.default_mime_type)

        # 2. Raw payload reuse
        raw_payload = await self._run_stage(
            AnalysisStage.RAW_PAYLOAD_CHECK,
            self.store.find_any_raw_payload(request.owner_id, request.video_ref),
        )
        if raw_payload is not None:
            logger.info(f"Reusing stored analyzer payload for {request.video_ref}")

        # 3. Analyzer attempt
        if raw_payload is None and self.analyzer is not None:
            raw_payload = await self._attempt_provider(video, mime_type)

        # 4. Direct model path, analysis-type templates do not apply
        if raw_payload is None:
            feedback = await self._run_stage(
                AnalysisStage.SKIP_PROVIDER,
                self._process_direct(video, mime_type, request.video_ref),
            )
            record, cached = await self._persist(
                request, feedback, AnalysisSource.MODEL_DIRECT, raw_payload=None
            )
            return self._respond(record, cached=cached, start_time=start_time)

        # 5. Prompt build
        try:
            prompt = self.registry.build_prompt(analysis_type, raw_payload)
        except Exception as e:
            raise self._fail(AnalysisStage.PROMPT_BUILD, e) from e

        # 6. Model call
        feedback = await self._run_stage(
            AnalysisStage.MODEL_CALL,
            self._process_prompt(analysis_type, prompt),
        )

        # 7. Persist
        record, cached = await self._persist(
            request, feedback, AnalysisSource.HYBRID, raw_payload=raw_payload
        )
        return self._respond(record, cached=cached, start_time=start_time)

    # ═══════════════════════════════════════════════════════════════════════════
    # Stages
    # ═══════════════════════════════════════════════════════════════════════════

    async def _attempt_provider(self, video: _VideoBytes, mime_type: str) -> dict | None:
        """
        Call the analyzer; analyzer failures fall back to the direct path.

        Any other exception is a defect and fails the stage.
        """
        video_bytes = await self._run_stage(AnalysisStage.PROVIDER_ATTEMPT, video.get())

        try:
            return await self.analyzer.analyze_video(video_bytes, mime_type)
        except PROVIDER_FAILURES as e:
            logger.warning(
                f"FALLBACK | reason={type(e).__name__}: {e} | "
                f"method=direct_model | triggered_by=provider_failure"
            )
            return None
        except Exception as e:
            raise self._fail(AnalysisStage.PROVIDER_ATTEMPT, e) from e

    async def _process_direct(self, video: _VideoBytes, mime_type: str, video_ref: str) -> str:
        video_bytes = await video.get()
        return await self.model.process_video_direct(
            video_bytes, mime_type, display_name=video_ref
        )

    async def _process_prompt(self, analysis_type: AnalysisType, prompt: str) -> str:
        text = await self.model.process(prompt, json_response=analysis_type.expects_json)
        return self.registry.normalize_output(analysis_type, text)

    async def _persist(
        self,
        request: AnalysisRequest,
        feedback: str,
        source: AnalysisSource,
        raw_payload: dict | None,
    ) -> tuple[AnalysisRecord, bool]:
        """
        Insert the record.

        A concurrent duplicate resolves to the record stored first.

        Returns:
            Tuple of (record, cached)
        """
        try:
            record = await self.store.insert(
                owner_id=request.owner_id,
                video_ref=request.video_ref,
                analysis_type=request.analysis_type,
                feedback_text=feedback,
                analysis_source=source,
                raw_analysis=raw_payload,
            )
            return record, False
        except RecordConflictError as conflict:
            logger.info("Concurrent request stored this analysis first, re-reading")
            existing = await self._run_stage(
                AnalysisStage.CACHE_CHECK,
                self.store.find_cached(
                    request.owner_id, request.video_ref, request.analysis_type
                ),
            )
            if existing is None:
                raise self._fail(AnalysisStage.PERSIST, conflict) from conflict
            return existing, True
        except Exception as e:
            raise self._fail(AnalysisStage.PERSIST, e) from e

    # ═══════════════════════════════════════════════════════════════════════════
    # Helpers
    # ═══════════════════════════════════════════════════════════════════════════

    async def _run_stage(self, stage: AnalysisStage, awaitable: Awaitable[T]) -> T:
        """Await a stage, wrapping failures into PipelineError."""
        try:
            return await awaitable
        except Exception as e:
            raise self._fail(stage, e) from e

    def _fail(self, stage: AnalysisStage, error: Exception) -> PipelineError:
        logger.error(f"Analysis failed at {stage.value}: {type(error).__name__}: {error}")
        return PipelineError(stage, str(error), cause=error)

    def _respond(
        self,
        record: AnalysisRecord,
        cached: bool,
        start_time: float,
    ) -> AnalysisOutcome:
        elapsed = time.time() - start_time
        perf_logger.info(
            f"PERF | analysis | type={record.analysis_type} | "
            f"source={record.analysis_source} | cached={cached} | "
            f"time={elapsed:.1f}s"
        )
        return AnalysisOutcome(
            feedback=record.feedback_text,
            record_id=record.id,
            analysis_type=AnalysisType(record.analysis_type),
            cached=cached,
            analysis_source=AnalysisSource(record.analysis_source),
        )
