"""Implementation of a rate limiter.

Controls the frequency of outgoing requests so a dependency is never called
more than a fixed number of times per period. Uses a sliding window log.
Calls that cannot get a permission within a bounded timeout are rejected.
"""

import time
import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional

from jokegate.infrastructure.resilience.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


@dataclass
class RateLimiterConfig:
    """Tunables for a rate limiter.

    Attributes:
        limit_for_period: Maximum permissions granted per refresh period.
        limit_refresh_period_s: Length of the sliding window in seconds.
        timeout_s: Longest a caller may wait for a permission; 0 rejects at once.
    """
    limit_for_period: int = 10
    limit_refresh_period_s: float = 1.0
    timeout_s: float = 0.0

    def __post_init__(self):
        if self.limit_for_period < 1:
            raise ValueError("limit_for_period must be at least 1")
        if self.limit_refresh_period_s <= 0:
            raise ValueError("limit_refresh_period_s must be positive")
        if self.timeout_s < 0:
            raise ValueError("timeout_s must not be negative")


class RateLimiter:
    """Simple sliding window rate limiter."""

    def __init__(
        self,
        name: str,
        config: Optional[RateLimiterConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the rate limiter.

        Args:
            name: Name used in logs and rejection errors.
            config: Limits to enforce (defaults if None).
            clock: Monotonic time source in seconds.
        """
        self.name = name
        self.config = config or RateLimiterConfig()
        self._clock = clock
        self.timestamps: Deque[float] = deque()
        self._lock = asyncio.Lock()
        logger.info(
            f"RateLimiter '{name}' initialized: {self.config.limit_for_period} requests / "
            f"{self.config.limit_refresh_period_s} seconds, timeout={self.config.timeout_s}s"
        )

    def _cleanup_timestamps(self) -> None:
        """Removes timestamps older than the time window."""
        now = self._clock()
        while self.timestamps and now - self.timestamps[0] >= self.config.limit_refresh_period_s:
            self.timestamps.popleft()

    def _wait_time_locked(self) -> float:
        self._cleanup_timestamps()
        if len(self.timestamps) < self.config.limit_for_period:
            return 0.0
        oldest_timestamp = self.timestamps[0]
        wait_time = oldest_timestamp + self.config.limit_refresh_period_s - self._clock()
        return max(0.0, wait_time)

    async def acquire_permission(self) -> None:
        """Takes a permission, waiting at most config.timeout_s for one.

        Raises:
            RateLimitExceededError: If no permission frees up within the timeout.
        """
        deadline = self._clock() + self.config.timeout_s
        while True:
            async with self._lock:
                wait_time = self._wait_time_locked()
                if len(self.timestamps) < self.config.limit_for_period:
                    # Permission granted, record timestamp
                    self.timestamps.append(self._clock())
                    logger.debug(f"RateLimiter '{self.name}' permission granted.")
                    return

            if self._clock() + wait_time > deadline:
                logger.warning(f"RateLimiter '{self.name}' rejected call. Next permission in {wait_time:.2f}s.")
                raise RateLimitExceededError(self.name, wait_time)

            logger.debug(f"RateLimiter '{self.name}' limit reached. Waiting for {wait_time:.2f} seconds.")
            await asyncio.sleep(wait_time)
            # Loop again to re-check condition after waiting

    async def get_wait_time(self) -> float:
        """Estimates the time needed before the next request can be made."""
        async with self._lock:
            return self._wait_time_locked()
