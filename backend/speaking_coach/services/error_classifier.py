"""
Error classification for user-facing responses.

Every failure leaving the analysis core is mapped to one ErrorCategory,
which in turn maps to one fixed user-safe message and one status code.
Internal error details are logged, never returned.

Classification uses exception types first and falls back to message
markers for errors raised by third-party code.

Example:
    category = ErrorClassifier.classify(error)
    status, body = ErrorClassifier.to_response(error)
"""

import asyncio
from enum import Enum

import httpx
from sqlalchemy.exc import SQLAlchemyError

from speaking_coach.config import ConfigurationError
from speaking_coach.models.schemas import AnalysisValidationError
from speaking_coach.services.ai_clients.base import (
    AIClientConnectionError,
    AIClientProcessingError,
    AIClientResponseError,
    AIClientTimeoutError,
)
from speaking_coach.services.analysis_store import AnalysisStoreError
from speaking_coach.services.video_source import VideoSourceError


class ErrorCategory(str, Enum):
    """Closed taxonomy of failures."""
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    NETWORK = "network"
    TIMEOUT = "timeout"
    PROCESSING = "processing"
    STORAGE = "storage"
    DATABASE = "database"
    UNKNOWN = "unknown"


USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.VALIDATION: "Invalid request. Please check your input and try again.",
    ErrorCategory.CONFIGURATION: "Service is temporarily unavailable. Please try again later.",
    ErrorCategory.NETWORK: "Unable to connect to the service. Please check your connection and try again.",
    ErrorCategory.TIMEOUT: "The request is taking longer than expected. Please try again.",
    ErrorCategory.PROCESSING: "Failed to process your request. Please try again.",
    ErrorCategory.STORAGE: "Failed to access video storage. Please try again.",
    ErrorCategory.DATABASE: "Failed to save your data. Please try again.",
    ErrorCategory.UNKNOWN: "An unexpected error occurred. Please try again.",
}

STATUS_CODES: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.CONFIGURATION: 500,
    ErrorCategory.NETWORK: 503,
    ErrorCategory.TIMEOUT: 504,
    ErrorCategory.PROCESSING: 503,
    ErrorCategory.STORAGE: 500,
    ErrorCategory.DATABASE: 500,
    ErrorCategory.UNKNOWN: 500,
}

# Type-based rules, checked in order
TYPE_RULES: list[tuple[tuple[type[BaseException], ...], ErrorCategory]] = [
    ((AIClientTimeoutError, asyncio.TimeoutError, httpx.TimeoutException), ErrorCategory.TIMEOUT),
    ((AIClientConnectionError, AIClientResponseError, httpx.TransportError, ConnectionError), ErrorCategory.NETWORK),
    ((ConfigurationError,), ErrorCategory.CONFIGURATION),
    ((VideoSourceError,), ErrorCategory.STORAGE),
    ((AnalysisStoreError, SQLAlchemyError), ErrorCategory.DATABASE),
    ((AIClientProcessingError,), ErrorCategory.PROCESSING),
    ((AnalysisValidationError,), ErrorCategory.VALIDATION),
]

# Message markers (lowercase), checked in the same order as TYPE_RULES
MESSAGE_MARKERS: list[tuple[tuple[str, ...], ErrorCategory]] = [
    (("timeout", "timed out", "etimedout", "deadline"), ErrorCategory.TIMEOUT),
    (("network", "econnrefused", "connection refused", "connection reset", "fetch failed", "status 5"), ErrorCategory.NETWORK),
    (("missing required configuration", "api key", "api_key", "not configured"), ErrorCategory.CONFIGURATION),
    (("storage", "s3", "bucket", "presigned"), ErrorCategory.STORAGE),
    (("database", "supabase", "sql", "constraint"), ErrorCategory.DATABASE),
    (("process", "gemini", "analyzer", "parse", "json", "empty response"), ErrorCategory.PROCESSING),
    (("invalid", "validation", "required"), ErrorCategory.VALIDATION),
]


class ErrorClassifier:
    """Maps exceptions to categories, user messages and status codes."""

    @staticmethod
    def classify(error: BaseException) -> ErrorCategory:
        """
        Determine the category of an error.

        Wrapper exceptions (PipelineError and anything raised "from" another
        exception) are unwrapped to their root cause first.

        Args:
            error: Exception to classify

        Returns:
            ErrorCategory of the root cause
        """
        error = _root_cause(error)

        for types_, category in TYPE_RULES:
            if isinstance(error, types_):
                return category

        message = str(error).lower()
        for markers, category in MESSAGE_MARKERS:
            if any(marker in message for marker in markers):
                return category

        return ErrorCategory.UNKNOWN

    @staticmethod
    def to_user_message(category: ErrorCategory) -> str:
        """Fixed user-safe sentence for a category."""
        return USER_MESSAGES[category]

    @staticmethod
    def to_status_code(category: ErrorCategory) -> int:
        """HTTP status code for a category."""
        return STATUS_CODES[category]

    @classmethod
    def to_response(cls, error: BaseException) -> tuple[int, dict]:
        """
        Build the failure response for an error.

        Returns:
            Tuple of (status_code, {"success": False, "error": ..., "code": ...})
        """
        category = cls.classify(error)
        body = {
            "success": False,
            "error": cls.to_user_message(category),
            "code": category.value,
        }
        return cls.to_status_code(category), body


def _root_cause(error: BaseException) -> BaseException:
    """Follow explicit cause links to the innermost known error."""
    seen = set()
    while id(error) not in seen:
        seen.add(id(error))
        cause = getattr(error, "cause", None) or error.__cause__
        if not isinstance(cause, BaseException) or _is_classifiable(error):
            break
        error = cause
    return error


def _is_classifiable(error: BaseException) -> bool:
    """True if the error's own type already determines a category."""
    return any(isinstance(error, types_) for types_, _ in TYPE_RULES)
