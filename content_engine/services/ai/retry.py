"""
Timeout and retry policy for external model calls.

The SDK-level retries are disabled (max_retries=0 on the clients); every
external call goes through a RetryPolicy so that attempts, backoff and the
per-call timeout are explicit configuration.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Type, TypeVar

from content_engine.services.errors import AIErrorInfo, AIServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attributes:
        max_attempts: Total attempts per call (1 = no retry)
        backoff_seconds: Base delay, doubled after each failed attempt
        timeout_seconds: Per-attempt timeout, None for unbounded
    """

    max_attempts: int = 1
    backoff_seconds: float = 2.0
    timeout_seconds: Optional[float] = 90.0

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            backoff_seconds=settings.retry_backoff_seconds,
            timeout_seconds=settings.request_timeout_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay before the next attempt, after `attempt` failures."""
        return self.backoff_seconds * (2 ** (attempt - 1))

    async def run(
        self,
        call: Callable[[], Awaitable[T]],
        operation: str,
        error_class: Type[AIServiceError] = AIServiceError,
    ) -> T:
        """
        Run `call` under the timeout, retrying retryable AI service errors.

        Args:
            call: Zero-argument factory returning a fresh awaitable per attempt
            operation: Name used in log lines and error messages
            error_class: Error raised when an attempt times out

        Raises:
            error_class: Timeout on the last attempt
            AIServiceError: Non-retryable failure or retries exhausted
        """
        attempts = max(1, int(self.max_attempts))

        for attempt in range(1, attempts + 1):
            try:
                if self.timeout_seconds:
                    return await asyncio.wait_for(call(), timeout=self.timeout_seconds)
                return await call()
            except asyncio.TimeoutError as e:
                error = error_class(
                    f"{operation} timed out after {self.timeout_seconds}s",
                    info=AIErrorInfo(error_type="timeout", message="Request timed out"),
                )
                if attempt >= attempts:
                    raise error from e
                last_error: AIServiceError = error
            except AIServiceError as e:
                if not e.retryable or attempt >= attempts:
                    raise
                last_error = e

            delay = self.delay_for(attempt)
            logger.warning(
                f"{operation} attempt {attempt}/{attempts} failed, retrying in {delay:.1f}s: {last_error}"
            )
            await asyncio.sleep(delay)
