"""
Retry Policy

Wraps an async operation with exponential backoff and jitter. Errors that can
never succeed on a second try (client HTTP errors, malformed input) fail
immediately; everything else is retried until the attempt budget runs out.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Dict, Optional

from restaurant_kb.core.base import (
    HTTPError,
    ParseError,
    RetryError,
    ValidationError,
)
from restaurant_kb.core.config import RetryConfig


class RetryPolicy:
    """
    Exponential backoff retry policy.

    ``max_retries`` counts retries, so an operation is attempted at most
    ``max_retries + 1`` times.
    """

    NON_RETRYABLE_STATUSES = frozenset({400, 401, 403, 404, 422})
    NON_RETRYABLE_ERRORS = (ParseError, ValidationError, TypeError, ValueError)

    def __init__(self, max_retries: int = 3, base_delay: float = 1.0, max_delay: float = 30.0,
                 backoff_factor: float = 2.0, jitter: bool = True,
                 sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
                 rng: Optional[Callable[[], float]] = None):
        """
        Args:
            max_retries: Retries after the first attempt
            base_delay: Base delay in seconds
            max_delay: Upper bound for a single delay in seconds
            backoff_factor: Multiplier applied per attempt
            jitter: Apply +/-25% random jitter to every delay
            sleep: Coroutine used to wait, defaults to asyncio.sleep
            rng: Source of uniform [0, 1) values for jitter
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter = jitter
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.random
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'RetryPolicy':
        """Build a policy from the ``retry`` section of a config dict"""
        retry_config = RetryConfig(**config.get('retry', {}))
        return cls(
            max_retries=retry_config.max_retries,
            base_delay=retry_config.base_delay,
            max_delay=retry_config.max_delay,
            backoff_factor=retry_config.backoff_factor,
            jitter=retry_config.jitter,
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate the wait before a given attempt.

        Args:
            attempt: The attempt about to be made (1-based, so the first retry is 2)

        Returns:
            Delay in seconds
        """
        delay = min(self.max_delay, self.base_delay * (self.backoff_factor ** (attempt - 1)))

        if self.jitter:
            delay += delay * 0.25 * (2 * self._rng() - 1)

        return max(0.0, delay)

    def is_retryable(self, error: BaseException) -> bool:
        """Return False for errors that will fail the same way on every attempt"""
        if isinstance(error, HTTPError):
            return error.status not in self.NON_RETRYABLE_STATUSES
        if isinstance(error, self.NON_RETRYABLE_ERRORS):
            return False
        return True

    async def execute(self, operation: Callable[[int], Awaitable[Any]], label: str = "operation") -> Any:
        """
        Run ``operation`` until it succeeds or the attempt budget is spent.

        Args:
            operation: Async callable receiving the 1-based attempt number
            label: Human readable name used in log lines and errors

        Returns:
            Whatever the operation returns

        Raises:
            RetryError: When every attempt failed with a retryable error
            Exception: A non-retryable error is re-raised unchanged
        """
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation(attempt)
            except Exception as e:
                if not self.is_retryable(e):
                    self.logger.debug(f"{label}: non-retryable error on attempt {attempt}: {e}")
                    raise
                last_error = e

            if attempt >= self.max_attempts:
                break

            delay = self.calculate_delay(attempt + 1)
            if isinstance(last_error, HTTPError) and last_error.status == 429 and last_error.retry_after:
                delay = min(self.max_delay, max(delay, last_error.retry_after))

            self.logger.warning(
                f"{label} failed (attempt {attempt}/{self.max_attempts}): {last_error}, "
                f"retry attempt {attempt + 1} in {delay:.2f}s"
            )
            await self._sleep(delay)

        raise RetryError(label, self.max_attempts, last_error)
