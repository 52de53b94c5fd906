"""Semaphore bulkhead limiting concurrent in-flight calls."""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from jokegate.infrastructure.resilience.exceptions import BulkheadFullError

logger = logging.getLogger(__name__)


@dataclass
class BulkheadConfig:
    """Tunables for a bulkhead.

    Attributes:
        max_concurrent_calls: Calls allowed in flight at the same time.
        max_wait_s: Longest a caller may wait for a free slot; 0 rejects at once.
    """
    max_concurrent_calls: int = 10
    max_wait_s: float = 0.0

    def __post_init__(self):
        if self.max_concurrent_calls < 1:
            raise ValueError("max_concurrent_calls must be at least 1")
        if self.max_wait_s < 0:
            raise ValueError("max_wait_s must not be negative")


class Bulkhead:
    """Caps the number of concurrent calls to a dependency."""

    def __init__(self, name: str, config: Optional[BulkheadConfig] = None):
        self.name = name
        self.config = config or BulkheadConfig()
        self._semaphore = asyncio.Semaphore(self.config.max_concurrent_calls)
        self._in_flight = 0
        logger.info(
            f"Bulkhead '{name}' initialized: max_concurrent_calls={self.config.max_concurrent_calls}, "
            f"max_wait={self.config.max_wait_s}s"
        )

    @property
    def available_slots(self) -> int:
        return self.config.max_concurrent_calls - self._in_flight

    async def acquire(self) -> None:
        """Takes a slot, waiting at most config.max_wait_s.

        Raises:
            BulkheadFullError: If no slot frees up in time.
        """
        if not self._semaphore.locked():
            await self._semaphore.acquire()
        elif self.config.max_wait_s > 0:
            try:
                await asyncio.wait_for(self._semaphore.acquire(), timeout=self.config.max_wait_s)
            except asyncio.TimeoutError:
                logger.warning(f"Bulkhead '{self.name}' still full after {self.config.max_wait_s}s.")
                raise BulkheadFullError(self.name, self.config.max_concurrent_calls) from None
        else:
            logger.warning(f"Bulkhead '{self.name}' full, rejecting call.")
            raise BulkheadFullError(self.name, self.config.max_concurrent_calls)
        self._in_flight += 1

    def release(self) -> None:
        self._in_flight -= 1
        self._semaphore.release()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Holds a slot for the duration of the block, released on any exit."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()
