"""
Base protocols and errors for external AI services.

Two kinds of services are used:
- the specialized video analyzer (provider), returning a raw analysis payload
- the general-purpose language model, turning prompts or videos into feedback

Both are injected into the orchestrator through the protocols below, so
tests can substitute fakes without network access.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass
class AIClientConfig:
    """
    Configuration for HTTP-based AI client instances.

    Attributes:
        base_url: API endpoint URL
        timeout: Request timeout in seconds
        api_key: Optional API key for authenticated services
        max_retries: Number of attempts for transient errors
        retry_base_delay: Delay before the first retry in seconds
    """

    base_url: str
    timeout: float = 240.0
    api_key: str | None = None
    max_retries: int = 3
    retry_base_delay: float = 1.0


@runtime_checkable
class VideoAnalyzer(Protocol):
    """
    Protocol for the specialized video analysis service.

    Example:
        async def analyze(analyzer: VideoAnalyzer, data: bytes) -> dict:
            return await analyzer.analyze_video(data, "video/mp4")
    """

    async def analyze_video(self, video_bytes: bytes, mime_type: str) -> dict:
        """
        Analyze a video and return the raw analysis payload.

        Raises:
            AIClientError: If the analysis fails
        """
        ...

    async def health_check(self) -> bool:
        """Best-effort liveness probe, never raises."""
        ...

    async def close(self) -> None:
        """Close the client and release resources."""
        ...


@runtime_checkable
class LanguageModel(Protocol):
    """
    Protocol for the general-purpose language model.

    Example:
        async def feedback(model: LanguageModel, prompt: str) -> str:
            return await model.process(prompt)
    """

    async def process(self, prompt: str, json_response: bool = False) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: Complete prompt text
            json_response: Ask the model for a JSON document

        Raises:
            AIClientError: If generation fails or returns no text
        """
        ...

    async def process_video_direct(
        self,
        video_bytes: bytes,
        mime_type: str,
        display_name: str | None = None,
    ) -> str:
        """
        Generate generic feedback directly from the video.

        Raises:
            AIClientError: If upload, processing or generation fails
        """
        ...

    async def close(self) -> None:
        """Close the client and release resources."""
        ...


class AIClientError(Exception):
    """
    Base exception for AI client errors.

    Attributes:
        message: Error description
        provider: AI service name (analyzer, gemini, etc.)
        model: Model that caused the error
        original_error: Underlying exception if available
    """

    retryable = False

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        model: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.provider = provider
        self.model = model
        self.original_error = original_error
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.provider:
            parts.append(f"provider={self.provider}")
        if self.model:
            parts.append(f"model={self.model}")
        return " | ".join(parts)


class AIClientTimeoutError(AIClientError):
    """Raised when a request times out."""

    retryable = True


class AIClientConnectionError(AIClientError):
    """Raised when connection to AI service fails."""

    retryable = True


class AIClientResponseError(AIClientError):
    """
    Raised when AI service returns an error response.

    Server-side failures (5xx) are retryable, client errors (4xx) are not.

    Attributes:
        status_code: HTTP status code if available
        response_body: Response body if available
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.response_body = response_body

    @property
    def retryable(self) -> bool:
        return self.status_code is not None and self.status_code >= 500


class AIClientProcessingError(AIClientError):
    """
    Raised when an AI service answers but the answer is unusable.

    Covers malformed bodies, invalid payloads, empty model output and
    remote processing failures. Retrying would not change the outcome.
    """

    pass
