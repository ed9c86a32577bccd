"""
Bounded retry with exponential backoff for external calls.

Only transient failures are retried: timeouts, refused or reset
connections and 5xx responses. Everything else is raised on the first
attempt. After the last attempt the last error is raised unchanged.

Example:
    executor = RetryExecutor(max_attempts=3, base_delay=1.0)
    payload = await executor.execute(lambda: client.post_video(data))
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from speaking_coach.services.ai_clients.base import AIClientError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]

# Transport-level errors that are safe to retry when not wrapped yet
TRANSIENT_HTTP_ERRORS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
    httpx.ReadError,
)


def is_retryable(error: BaseException) -> bool:
    """
    Decide whether an error is transient.

    Args:
        error: Exception raised by the operation

    Returns:
        True for timeouts, connection failures and 5xx-class responses
    """
    if isinstance(error, AIClientError):
        return bool(error.retryable)
    if isinstance(error, TRANSIENT_HTTP_ERRORS):
        return True
    if isinstance(error, (asyncio.TimeoutError, ConnectionError)):
        return True
    return False


def _log_retry(retry_state: RetryCallState) -> None:
    """Log a failed attempt before sleeping."""
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        f"Attempt {retry_state.attempt_number} failed: {error}. "
        f"Retrying in {delay:.1f}s"
    )


class RetryExecutor:
    """
    Runs an async operation with bounded exponential backoff.

    Delay before retry N (1-based) is base_delay * 2^(N-1),
    e.g. 1s, 2s for three attempts with base_delay=1.0.

    Attributes:
        max_attempts: Total number of attempts (first call included)
        base_delay: Delay before the first retry in seconds
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        sleep: SleepFunc | None = None,
    ):
        """
        Initialize executor.

        Args:
            max_attempts: Total number of attempts, at least 1
            base_delay: Delay before the first retry in seconds
            sleep: Async sleep function (asyncio.sleep if None)
        """
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self._sleep = sleep or asyncio.sleep

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run operation until it succeeds or attempts are exhausted.

        Args:
            operation: Zero-argument callable returning an awaitable,
                called once per attempt

        Returns:
            Result of the first successful attempt

        Raises:
            Exception: The non-retryable error, or the last retryable one
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=2),
            retry=retry_if_exception(is_retryable),
            sleep=self._sleep,
            before_sleep=_log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await operation()
