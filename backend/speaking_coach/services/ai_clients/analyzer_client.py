"""
Specialized video analyzer client.

Uploads the video as multipart form data to the analyzer service and
returns its raw analysis payload. Transient failures are retried with
RetryExecutor; malformed or invalid answers are not.
"""

import logging
import time

import httpx

from speaking_coach.config import Settings
from speaking_coach.logging_config import PERF_LOGGER_NAME
from speaking_coach.services.ai_clients.base import (
    AIClientConfig,
    AIClientConnectionError,
    AIClientProcessingError,
    AIClientResponseError,
    AIClientTimeoutError,
)
from speaking_coach.services.ai_clients.retry import RetryExecutor
from speaking_coach.utils.json_utils import check_payload_structure

logger = logging.getLogger(__name__)
perf_logger = logging.getLogger(PERF_LOGGER_NAME)

PROVIDER_NAME = "analyzer"
UPLOAD_FILENAME = "video.mp4"


class VideoAnalyzerClient:
    """
    Async HTTP client for the specialized video analyzer.

    Example:
        async with VideoAnalyzerClient.from_settings(settings) as client:
            if await client.health_check():
                payload = await client.analyze_video(data, "video/mp4")
    """

    def __init__(
        self,
        config: AIClientConfig,
        health_timeout: float = 5.0,
        retry_executor: RetryExecutor | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize analyzer client.

        Args:
            config: Endpoint URL, timeout, API key and retry settings
            health_timeout: Timeout for health probe in seconds
            retry_executor: Retry policy (built from config if None)
            http_client: Shared HTTP client (created if None)
        """
        self.config = config
        self.health_timeout = health_timeout
        self.retry_executor = retry_executor or RetryExecutor(
            max_attempts=config.max_retries,
            base_delay=config.retry_base_delay,
        )
        # No global timeout - each request sets its own timeout explicitly
        self.http_client = http_client or httpx.AsyncClient(timeout=None)

    @classmethod
    def from_settings(cls, settings: Settings) -> "VideoAnalyzerClient":
        """
        Create VideoAnalyzerClient from application settings.

        Args:
            settings: Application settings

        Returns:
            Configured VideoAnalyzerClient instance
        """
        config = AIClientConfig(
            base_url=settings.external_ai_api_url,
            timeout=settings.external_ai_timeout,
            api_key=settings.external_ai_api_key,
            max_retries=settings.external_ai_max_retries,
            retry_base_delay=settings.retry_base_delay,
        )
        return cls(config=config, health_timeout=settings.provider_health_timeout)

    async def __aenter__(self) -> "VideoAnalyzerClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.http_client.aclose()

    @property
    def health_url(self) -> str:
        """Health endpoint derived from the analyze endpoint."""
        url = self.config.base_url
        if "/analyze/" in url:
            return url.replace("/analyze/", "/health")
        return f"{url.rstrip('/')}/health"

    async def health_check(self) -> bool:
        """
        Check availability of the analyzer service.

        Returns:
            True if the service answered with 2xx, False otherwise
        """
        try:
            response = await self.http_client.get(
                self.health_url,
                headers=self._headers(),
                timeout=self.health_timeout,
            )
            available = response.is_success
            logger.debug(f"Analyzer health: {response.status_code}")
            return available
        except Exception as e:
            logger.debug(f"Analyzer not available: {e}")
            return False

    async def analyze_video(self, video_bytes: bytes, mime_type: str) -> dict:
        """
        Analyze a video with retries for transient failures.

        Args:
            video_bytes: Video content
            mime_type: Media type of the video

        Returns:
            Raw analysis payload (non-empty JSON object)

        Raises:
            AIClientTimeoutError: All attempts timed out
            AIClientConnectionError: Service unreachable on all attempts
            AIClientResponseError: Non-2xx response
            AIClientProcessingError: Malformed or structurally invalid body
        """
        start_time = time.time()
        payload = await self.retry_executor.execute(
            lambda: self._post_video(video_bytes, mime_type)
        )
        elapsed = time.time() - start_time

        perf_logger.info(
            f"PERF | analyzer | size_kb={len(video_bytes) / 1024:.0f} | "
            f"keys={len(payload)} | time={elapsed:.1f}s"
        )
        return payload

    def _headers(self) -> dict[str, str]:
        if self.config.api_key:
            return {"Authorization": f"Bearer {self.config.api_key}"}
        return {}

    async def _post_video(self, video_bytes: bytes, mime_type: str) -> dict:
        """Single analyze attempt, mapping failures to AIClientError types."""
        url = self.config.base_url
        logger.info(
            f"Analyzer request: POST {url}, "
            f"size: {len(video_bytes) / 1024 / 1024:.1f} MB, type: {mime_type}"
        )

        start_time = time.time()
        try:
            response = await self.http_client.post(
                url,
                files={"file": (UPLOAD_FILENAME, video_bytes, mime_type)},
                headers=self._headers(),
                timeout=self.config.timeout,
            )
        except httpx.TimeoutException as e:
            elapsed = time.time() - start_time
            logger.error(f"Analyzer timeout after {elapsed:.1f}s: {e}")
            raise AIClientTimeoutError(
                f"Analyzer request timed out after {elapsed:.1f}s",
                provider=PROVIDER_NAME,
                original_error=e,
            ) from e
        except httpx.TransportError as e:
            logger.error(f"Analyzer connection failed: {type(e).__name__}: {e}")
            raise AIClientConnectionError(
                f"Analyzer network error: {e}",
                provider=PROVIDER_NAME,
                original_error=e,
            ) from e

        elapsed = time.time() - start_time
        logger.info(f"Analyzer response: {response.status_code}, elapsed: {elapsed:.1f}s")

        if not response.is_success:
            logger.error(
                f"Analyzer HTTP error: {response.status_code} - {response.text[:200]}"
            )
            raise AIClientResponseError(
                f"Analyzer returned status {response.status_code}",
                provider=PROVIDER_NAME,
                status_code=response.status_code,
                response_body=response.text[:500],
            )

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Analyzer returned malformed JSON: {response.text[:200]}")
            raise AIClientProcessingError(
                "Failed to parse analyzer response: malformed JSON",
                provider=PROVIDER_NAME,
                original_error=e,
            ) from e

        reason = check_payload_structure(payload)
        if reason:
            logger.error(f"Analyzer returned invalid payload: {reason}")
            raise AIClientProcessingError(
                f"Invalid analyzer payload: {reason}",
                provider=PROVIDER_NAME,
            )

        return payload
