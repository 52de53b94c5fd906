"""Executing API calls with automatic retries.

Implements exponential backoff for handling transient errors like
connection failures, timeouts, non-success responses or malformed payloads.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Coroutine, Optional, Tuple, Type

from jokegate.domain.events.resilience_events import DomainEvent, RetryScheduled
from jokegate.infrastructure.resilience.exceptions import MaxRetryError, ResilienceError

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Tunables for a retry policy.

    Attributes:
        max_attempts: Total attempts including the first call.
        wait_duration_s: Delay before the first retry.
        backoff_multiplier: Factor applied to the delay after each retry (1 for fixed).
        max_wait_s: Upper bound for a single delay.
        retry_exceptions: Errors that trigger a retry.
        ignore_exceptions: Errors propagated immediately even if retryable.
    """
    max_attempts: int = 3
    wait_duration_s: float = 0.5
    backoff_multiplier: float = 2.0
    max_wait_s: float = 5.0
    retry_exceptions: Tuple[Type[BaseException], ...] = (Exception,)
    ignore_exceptions: Tuple[Type[BaseException], ...] = (ResilienceError,)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.wait_duration_s < 0 or self.max_wait_s < 0:
            raise ValueError("retry wait durations must not be negative")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be at least 1")

    def backoff(self, attempt: int) -> float:
        """Delay in seconds after the given (1-based) failed attempt."""
        return min(self.wait_duration_s * self.backoff_multiplier ** (attempt - 1), self.max_wait_s)


class RetryPolicy:
    """Runs an async callable until it succeeds or the attempts run out."""

    def __init__(
        self,
        name: str,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        event_listener: Optional[Callable[[DomainEvent], None]] = None,
    ):
        self.name = name
        self.config = config or RetryConfig()
        self._sleep = sleep
        self._event_listener = event_listener
        logger.info(
            f"RetryPolicy '{name}' initialized: max_attempts={self.config.max_attempts}, "
            f"initial_backoff={self.config.wait_duration_s}s, factor={self.config.backoff_multiplier}"
        )

    async def execute(
        self,
        func: Callable[..., Coroutine[Any, Any, Any]],
        *args: Any,
        endpoint_name: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        """Executes an async function, retrying retryable errors.

        Args:
            func: The async function (API call) to execute.
            *args: Positional arguments for the function.
            endpoint_name: Name used in logs and events (defaults to func.__name__).
            **kwargs: Keyword arguments for the function.

        Returns:
            The result of the first successful attempt.

        Raises:
            MaxRetryError: If every attempt failed with a retryable error.
            Exception: Any non-retryable error, unchanged.
        """
        effective_endpoint = endpoint_name or getattr(func, "__name__", repr(func))
        attempts = self.config.max_attempts

        for attempt in range(1, attempts + 1):
            try:
                return await func(*args, **kwargs)
            except self.config.ignore_exceptions:
                raise
            except self.config.retry_exceptions as e:
                if attempt >= attempts:
                    logger.error(
                        f"Max attempts ({attempts}) reached for {self.name}.{effective_endpoint}. Last error: {e}"
                    )
                    raise MaxRetryError(e, attempts) from e
                delay = self.config.backoff(attempt)
                logger.warning(
                    f"Retryable error calling {self.name}.{effective_endpoint} on attempt {attempt}/{attempts}: "
                    f"{type(e).__name__}. Waiting {delay:.2f}s..."
                )
                if self._event_listener:
                    self._event_listener(RetryScheduled(
                        policy=self.name, endpoint=effective_endpoint, attempt_number=attempt, delay_seconds=delay
                    ))
                if delay > 0:
                    await self._sleep(delay)
