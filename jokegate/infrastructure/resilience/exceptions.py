"""Exceptions raised by the resilience policies."""

from typing import Optional


class ResilienceError(Exception):
    """Base class for errors raised by a resilience policy."""


class CallNotPermittedError(ResilienceError):
    """Raised when an open circuit breaker short-circuits a call."""

    def __init__(self, breaker_name: str, state: str):
        self.breaker_name = breaker_name
        self.state = state
        super().__init__(f"CircuitBreaker '{breaker_name}' is {state} and does not permit further calls")


class RateLimitExceededError(ResilienceError):
    """Raised when no rate limit permission is available in time."""

    def __init__(self, limiter_name: str, wait_time: Optional[float] = None):
        self.limiter_name = limiter_name
        self.wait_time = wait_time
        super().__init__(f"RateLimiter '{limiter_name}' does not permit further calls")


class BulkheadFullError(ResilienceError):
    """Raised when the bulkhead has no free slot."""

    def __init__(self, bulkhead_name: str, max_concurrent_calls: int):
        self.bulkhead_name = bulkhead_name
        self.max_concurrent_calls = max_concurrent_calls
        super().__init__(
            f"Bulkhead '{bulkhead_name}' is full and does not permit further calls "
            f"(max_concurrent_calls={max_concurrent_calls})"
        )


class MaxRetryError(ResilienceError):
    """Exception raised when max retries are exceeded."""

    def __init__(self, original_exception: Exception, attempts: int):
        self.original_exception = original_exception
        self.attempts = attempts
        super().__init__(f"Max retries ({attempts}) exceeded. Last error: {original_exception}")


# Rejections caused by local saturation rather than by the remote dependency
SATURATION_ERRORS = (RateLimitExceededError, BulkheadFullError)
