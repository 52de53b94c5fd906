"""Domain Events related to remote calls and resilience.

Emitted by the resilience policies when a call succeeds, fails, is rejected
or retried, and when a circuit breaker changes state.
"""

from dataclasses import dataclass, field
import time


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class CallSucceeded(DomainEvent):
    """Event triggered when a guarded call returns normally."""
    policy: str  # Policy group name, e.g. 'jokeService'
    endpoint: str
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class CallFailed(DomainEvent):
    """Event triggered when a guarded call fails definitively (after retries)."""
    policy: str
    endpoint: str
    error_type: str
    error_message: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class CallRejected(DomainEvent):
    """Event triggered when a call is refused before reaching the network."""
    policy: str
    endpoint: str
    reason: str  # 'circuit_open', 'rate_limited', 'bulkhead_full'
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed call."""
    policy: str
    endpoint: str
    attempt_number: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class CircuitStateChanged(DomainEvent):
    """Event triggered when a circuit breaker transitions between states."""
    breaker: str
    from_state: str
    to_state: str
    timestamp: float = field(default_factory=time.time)
