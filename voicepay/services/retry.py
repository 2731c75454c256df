"""Bounded exponential-backoff retry for the pre-submission leg."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from ..config import RetryPolicy
from ..errors import (
    ErrorCode,
    NetworkError,
    RateLimited,
    Timeout,
    TranscriptionFailed,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: Tuple[Type[Exception], ...] = (
    TranscriptionFailed,
    NetworkError,
    RateLimited,
    Timeout,
)


def is_transient(error: Exception) -> bool:
    """True for failures a later attempt can get past.

    Service-side transcription failures are retried; a rejected API key and
    unusable command text are not.
    """
    if not isinstance(error, TRANSIENT_ERRORS):
        return False
    if isinstance(error, TranscriptionFailed):
        return error.code == ErrorCode.TRANSCRIPTION_FAILED
    return True


class RetryCoordinator:
    """Runs an operation, retrying transient failures with ``base * 2**attempt`` delays."""

    def __init__(self, policy: RetryPolicy,
                 retry_on: Callable[[Exception], bool] = is_transient,
                 sleep: Optional[Callable[[float], Awaitable[None]]] = None):
        self.policy = policy
        self.retry_on = retry_on
        self.sleep = sleep or asyncio.sleep

    @property
    def max_attempts(self) -> int:
        return 1 + (self.policy.max_retries if self.policy.enabled else 0)

    def delay_for(self, attempt_index: int) -> float:
        return self.policy.base_delay_seconds * (2 ** attempt_index)

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Await ``operation()``; the last error is re-raised once retries run out."""
        attempts = self.max_attempts
        for attempt in range(attempts):
            try:
                return await operation()
            except Exception as e:
                if attempt == attempts - 1 or not self.retry_on(e):
                    raise
                delay = self.delay_for(attempt)
                logger.warning(f"Attempt {attempt + 1}/{attempts} failed ({e}); retrying in {delay:.1f}s")
                await self.sleep(delay)
        raise AssertionError("unreachable")
