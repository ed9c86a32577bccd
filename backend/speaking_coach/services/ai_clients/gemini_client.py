"""
Gemini language model client.

Turns prompts into feedback text and, on the fallback path, analyzes the
video directly through the Gemini Files API. Calls are not retried here;
each API call (generation, upload, status check, delete) runs under
a hard deadline.
"""

import asyncio
import io
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from speaking_coach.config import Settings, load_prompt, validate_core_settings
from speaking_coach.logging_config import PERF_LOGGER_NAME
from speaking_coach.services.ai_clients.base import (
    AIClientConnectionError,
    AIClientProcessingError,
    AIClientTimeoutError,
)

logger = logging.getLogger(__name__)
perf_logger = logging.getLogger(PERF_LOGGER_NAME)

PROVIDER_NAME = "gemini"
DIRECT_FEEDBACK_PROMPT = "direct_feedback"

T = TypeVar("T")


class GeminiClient:
    """
    Async client for the Gemini API (google-genai SDK).

    Example:
        async with GeminiClient.from_settings(settings) as client:
            feedback = await client.process(prompt)
            feedback = await client.process_video_direct(data, "video/mp4")
    """

    def __init__(
        self,
        client: genai.Client,
        model: str = "gemini-2.5-flash",
        direct_prompt: str = "",
        llm_timeout: float = 300.0,
        poll_interval: float = 2.0,
        processing_timeout: float = 180.0,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        """
        Initialize Gemini client.

        Args:
            client: google-genai client
            model: Model name
            direct_prompt: Generic feedback prompt for the direct video path
            llm_timeout: Hard deadline per API call (generation, upload,
                status check, delete) in seconds
            poll_interval: Seconds between uploaded file state checks
            processing_timeout: Max seconds to wait for file processing
            sleep: Async sleep function (asyncio.sleep if None)
        """
        self.client = client
        self.model = model
        self.direct_prompt = direct_prompt
        self.llm_timeout = llm_timeout
        self.poll_interval = poll_interval
        self.processing_timeout = processing_timeout
        self._sleep = sleep or asyncio.sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiClient":
        """
        Create GeminiClient from application settings.

        Args:
            settings: Application settings

        Returns:
            Configured GeminiClient instance

        Raises:
            ConfigurationError: If the API key or model is missing
        """
        validate_core_settings(settings)
        return cls(
            client=genai.Client(api_key=settings.gemini_api_key),
            model=settings.gemini_model,
            direct_prompt=load_prompt(DIRECT_FEEDBACK_PROMPT, settings),
            llm_timeout=settings.llm_timeout,
            poll_interval=settings.file_poll_interval,
            processing_timeout=settings.file_processing_timeout,
        )

    async def __aenter__(self) -> "GeminiClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the underlying async transport."""
        await self.client.aio.aclose()

    # ═══════════════════════════════════════════════════════════════════════════
    # Public API
    # ═══════════════════════════════════════════════════════════════════════════

    async def process(self, prompt: str, json_response: bool = False) -> str:
        """
        Generate feedback text for a prompt.

        Args:
            prompt: Complete prompt with the analysis payload injected
            json_response: Request application/json output

        Returns:
            Non-empty model response text

        Raises:
            AIClientTimeoutError: Deadline exceeded
            AIClientConnectionError: Gemini unreachable
            AIClientProcessingError: API error or empty response
        """
        config = None
        if json_response:
            config = types.GenerateContentConfig(response_mime_type="application/json")

        logger.debug(
            f"Generating with {self.model}, prompt length: {len(prompt)}, "
            f"json: {json_response}"
        )
        start_time = time.time()
        text = await self._generate([prompt], config)
        elapsed = time.time() - start_time

        perf_logger.info(
            f"PERF | model | prompt_chars={len(prompt)} | "
            f"output_chars={len(text)} | time={elapsed:.1f}s"
        )
        return text

    async def process_video_direct(
        self,
        video_bytes: bytes,
        mime_type: str,
        display_name: str | None = None,
    ) -> str:
        """
        Generate generic feedback from the video itself.

        Uploads the video to the Files API, waits until it leaves the
        PROCESSING state, generates feedback with the direct prompt and
        deletes the uploaded file in every case.

        Args:
            video_bytes: Video content
            mime_type: Media type of the video
            display_name: Name shown for the uploaded file

        Returns:
            Non-empty feedback text

        Raises:
            AIClientTimeoutError: Processing or generation deadline exceeded
            AIClientConnectionError: Gemini unreachable
            AIClientProcessingError: Upload rejected, processing failed,
                API error or empty response
        """
        start_time = time.time()
        uploaded = None
        try:
            uploaded = await self._upload(video_bytes, mime_type, display_name)
            uploaded = await self._wait_until_processed(uploaded)
            text = await self._generate([uploaded, self.direct_prompt], None)
        finally:
            if uploaded is not None:
                await self._delete_file(uploaded.name)

        elapsed = time.time() - start_time
        perf_logger.info(
            f"PERF | model_direct | size_kb={len(video_bytes) / 1024:.0f} | "
            f"output_chars={len(text)} | time={elapsed:.1f}s"
        )
        return text

    # ═══════════════════════════════════════════════════════════════════════════
    # Internals
    # ═══════════════════════════════════════════════════════════════════════════

    async def _call(self, awaitable: Awaitable[T], action: str) -> T:
        """Await one Gemini API call under the deadline, mapping failures."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.llm_timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Gemini {action} timeout after {self.llm_timeout:.0f}s")
            raise AIClientTimeoutError(
                f"Gemini {action} timed out after {self.llm_timeout:.0f}s",
                provider=PROVIDER_NAME,
                model=self.model,
                original_error=e,
            ) from e
        except genai_errors.APIError as e:
            logger.error(f"Gemini API error during {action}: {e.code} - {e.message}")
            raise AIClientProcessingError(
                f"Failed to process {action} with Gemini: API error {e.code}",
                provider=PROVIDER_NAME,
                model=self.model,
                original_error=e,
            ) from e
        except httpx.TransportError as e:
            logger.error(f"Gemini connection failed during {action}: {type(e).__name__}: {e}")
            raise AIClientConnectionError(
                f"Gemini network error during {action}: {e}",
                provider=PROVIDER_NAME,
                model=self.model,
                original_error=e,
            ) from e

    async def _generate(
        self,
        contents: list,
        config: types.GenerateContentConfig | None,
    ) -> str:
        """Run one generation call and return its text."""
        response = await self._call(
            self.client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            ),
            "generation",
        )

        text = (response.text or "").strip()
        if not text:
            logger.error(f"Empty response from Gemini, model: {self.model}")
            raise AIClientProcessingError(
                "Gemini returned an empty response",
                provider=PROVIDER_NAME,
                model=self.model,
            )
        return text

    async def _upload(
        self,
        video_bytes: bytes,
        mime_type: str,
        display_name: str | None,
    ):
        """Upload video bytes to the Files API."""
        logger.info(
            f"Uploading video to Gemini Files API: "
            f"{len(video_bytes) / 1024 / 1024:.1f} MB, type: {mime_type}"
        )
        uploaded = await self._call(
            self.client.aio.files.upload(
                file=io.BytesIO(video_bytes),
                config=types.UploadFileConfig(
                    mime_type=mime_type,
                    display_name=display_name,
                ),
            ),
            "video upload",
        )
        logger.info(f"Uploaded to Gemini: {uploaded.name}")
        return uploaded

    async def _wait_until_processed(self, uploaded):
        """Poll the uploaded file until it leaves the PROCESSING state."""
        waited = 0.0
        while _state_name(uploaded) == "PROCESSING":
            if waited >= self.processing_timeout:
                raise AIClientTimeoutError(
                    f"Gemini video processing timed out after {waited:.0f}s",
                    provider=PROVIDER_NAME,
                    model=self.model,
                )
            await self._sleep(self.poll_interval)
            waited += self.poll_interval
            uploaded = await self._call(
                self.client.aio.files.get(name=uploaded.name),
                "file status check",
            )

        if _state_name(uploaded) == "FAILED":
            raise AIClientProcessingError(
                "Gemini video processing failed",
                provider=PROVIDER_NAME,
                model=self.model,
            )

        logger.debug(f"Gemini file {uploaded.name} ready after {waited:.0f}s")
        return uploaded

    async def _delete_file(self, name: str) -> None:
        """Delete an uploaded file; failures are logged, not raised."""
        try:
            await self._call(self.client.aio.files.delete(name=name), "file cleanup")
            logger.debug(f"Deleted Gemini file {name}")
        except Exception as e:
            logger.warning(f"Failed to delete Gemini file {name}: {e}")


def _state_name(uploaded) -> str:
    """Name of a file's processing state; files without a state count as ready."""
    state = getattr(uploaded, "state", None)
    if state is None:
        return "STATE_UNSPECIFIED"
    return getattr(state, "name", str(state))
