"""Composition of the resilience policies into one named group.

Order, outermost first: circuit breaker, rate limiter, bulkhead, retry.
An open breaker rejects before any rate or concurrency accounting happens,
and saturation rejections happen before the retry loop reaches the network.
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine, Dict, Optional

from jokegate.domain.events.resilience_events import (
    CallFailed, CallRejected, CallSucceeded, DomainEvent
)
from jokegate.infrastructure.resilience.api_retry import RetryConfig, RetryPolicy
from jokegate.infrastructure.resilience.bulkhead import Bulkhead, BulkheadConfig
from jokegate.infrastructure.resilience.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from jokegate.infrastructure.resilience.exceptions import (
    BulkheadFullError, CallNotPermittedError, RateLimitExceededError
)
from jokegate.infrastructure.resilience.rate_limiter import RateLimiter, RateLimiterConfig

logger = logging.getLogger(__name__)

Fallback = Callable[[Exception], Any]


def log_event(event: DomainEvent) -> None:
    """Default event listener."""
    logger.debug(f"EVENT: {event}")


@dataclass
class PolicyGroupConfig:
    """Configuration of every policy in a named group."""
    circuit_breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    rate_limiter: RateLimiterConfig = field(default_factory=RateLimiterConfig)
    bulkhead: BulkheadConfig = field(default_factory=BulkheadConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_mapping(cls, data: Dict[str, Dict[str, Any]]) -> "PolicyGroupConfig":
        """Builds a config from nested dicts keyed by policy, unknown keys ignored.

        Example:
            {'retry': {'max_attempts': 5}, 'bulkhead': {'max_concurrent_calls': 2}}
        """
        def pick(config_cls, section: str):
            raw = data.get(section) or {}
            known = {k: v for k, v in raw.items() if k in config_cls.__dataclass_fields__}
            unknown = set(raw) - set(known)
            if unknown:
                logger.warning(f"Ignoring unknown {section} settings: {sorted(unknown)}")
            return config_cls(**known)

        return cls(
            circuit_breaker=pick(CircuitBreakerConfig, "circuit_breaker"),
            rate_limiter=pick(RateLimiterConfig, "rate_limiter"),
            bulkhead=pick(BulkheadConfig, "bulkhead"),
            retry=pick(RetryConfig, "retry"),
        )


class ResiliencePolicy:
    """Guards async calls with a circuit breaker, rate limiter, bulkhead and retry."""

    def __init__(
        self,
        name: str,
        circuit_breaker: CircuitBreaker,
        rate_limiter: RateLimiter,
        bulkhead: Bulkhead,
        retry: RetryPolicy,
        event_listener: Callable[[DomainEvent], None] = log_event,
    ):
        self.name = name
        self.circuit_breaker = circuit_breaker
        self.rate_limiter = rate_limiter
        self.bulkhead = bulkhead
        self.retry = retry
        self._event_listener = event_listener

    @classmethod
    def from_config(
        cls,
        name: str,
        config: PolicyGroupConfig,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Any] = asyncio.sleep,
        event_listener: Callable[[DomainEvent], None] = log_event,
    ) -> "ResiliencePolicy":
        return cls(
            name=name,
            circuit_breaker=CircuitBreaker(name, config.circuit_breaker, clock=clock, event_listener=event_listener),
            rate_limiter=RateLimiter(name, config.rate_limiter, clock=clock),
            bulkhead=Bulkhead(name, config.bulkhead),
            retry=RetryPolicy(name, config.retry, sleep=sleep, event_listener=event_listener),
            event_listener=event_listener,
        )

    async def execute(
        self,
        func: Callable[..., Coroutine[Any, Any, Any]],
        *args: Any,
        fallback: Optional[Fallback] = None,
        endpoint_name: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        """Runs func through every policy of the group.

        Args:
            func: The async function (API call) to execute.
            *args: Positional arguments for the function.
            fallback: Called with the failure when the call is rejected or fails;
                its (possibly awaitable) result is returned instead of raising.
            endpoint_name: Name used in logs and events (defaults to func.__name__).
            **kwargs: Keyword arguments for the function.

        Returns:
            The result of func, or of fallback if func did not succeed.

        Raises:
            Exception: The failure, when no fallback is given.
        """
        endpoint = endpoint_name or getattr(func, "__name__", repr(func))
        try:
            return await self._guarded(func, args, kwargs, endpoint)
        except Exception as exc:
            if fallback is None:
                raise
            result = fallback(exc)
            if inspect.isawaitable(result):
                result = await result
            return result

    async def _guarded(self, func, args, kwargs, endpoint: str) -> Any:
        try:
            permission = self.circuit_breaker.acquire_permission()
        except CallNotPermittedError:
            self._event_listener(CallRejected(policy=self.name, endpoint=endpoint, reason="circuit_open"))
            raise

        start_time = time.perf_counter()
        try:
            await self.rate_limiter.acquire_permission()
            async with self.bulkhead.slot():
                result = await self.retry.execute(func, *args, endpoint_name=endpoint, **kwargs)
        except asyncio.CancelledError:
            self.circuit_breaker.release_permission(permission)
            raise
        except Exception as exc:
            self.circuit_breaker.on_error(permission, exc)
            if isinstance(exc, RateLimitExceededError):
                self._event_listener(CallRejected(policy=self.name, endpoint=endpoint, reason="rate_limited"))
            elif isinstance(exc, BulkheadFullError):
                self._event_listener(CallRejected(policy=self.name, endpoint=endpoint, reason="bulkhead_full"))
            else:
                self._event_listener(CallFailed(
                    policy=self.name, endpoint=endpoint, error_type=type(exc).__name__, error_message=str(exc)
                ))
            raise

        self.circuit_breaker.on_success(permission)
        latency_ms = (time.perf_counter() - start_time) * 1000
        self._event_listener(CallSucceeded(policy=self.name, endpoint=endpoint, latency_ms=latency_ms))
        return result
