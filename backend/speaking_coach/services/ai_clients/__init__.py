"""
AI Clients package for external analysis services.

- VideoAnalyzerClient: specialized video analyzer (provider), HTTP multipart
- GeminiClient: general-purpose language model (google-genai)
- RetryExecutor: bounded exponential backoff for transient failures

Usage:
    from speaking_coach.services.ai_clients import GeminiClient, VideoAnalyzerClient

    async with VideoAnalyzerClient.from_settings(settings) as analyzer:
        payload = await analyzer.analyze_video(data, "video/mp4")

    async with GeminiClient.from_settings(settings) as model:
        feedback = await model.process(prompt)
"""

from speaking_coach.services.ai_clients.analyzer_client import VideoAnalyzerClient
from speaking_coach.services.ai_clients.base import (
    AIClientConfig,
    AIClientConnectionError,
    AIClientError,
    AIClientProcessingError,
    AIClientResponseError,
    AIClientTimeoutError,
    LanguageModel,
    VideoAnalyzer,
)
from speaking_coach.services.ai_clients.gemini_client import GeminiClient
from speaking_coach.services.ai_clients.retry import RetryExecutor, is_retryable

__all__ = [
    # Protocols and config
    "VideoAnalyzer",
    "LanguageModel",
    "AIClientConfig",
    # Errors
    "AIClientError",
    "AIClientTimeoutError",
    "AIClientConnectionError",
    "AIClientResponseError",
    "AIClientProcessingError",
    # Implementations
    "VideoAnalyzerClient",
    "GeminiClient",
    # Retry
    "RetryExecutor",
    "is_retryable",
]
