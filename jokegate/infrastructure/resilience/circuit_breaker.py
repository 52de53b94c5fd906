"""Count-based circuit breaker.

Stops calls to a failing dependency once the failure rate over the last N
recorded calls crosses a threshold, lets a few trial calls through after a
cool-down period, and closes again when they succeed.
"""

import enum
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, Tuple, Type

from jokegate.domain.events.resilience_events import CircuitStateChanged, DomainEvent
from jokegate.infrastructure.resilience.exceptions import CallNotPermittedError, SATURATION_ERRORS

logger = logging.getLogger(__name__)


class CircuitState(str, enum.Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass
class CircuitBreakerConfig:
    """Tunables for a circuit breaker.

    Attributes:
        failure_rate_threshold: Failure percentage (0-100) at or above which the breaker opens.
        sliding_window_size: Number of most recent outcomes considered while closed.
        minimum_number_of_calls: Outcomes required before the failure rate is evaluated.
        wait_duration_in_open_state_s: Cool-down before a half-open trial is allowed.
        permitted_number_of_calls_in_half_open_state: Trial calls admitted while half-open.
        ignore_exceptions: Errors that are neither successes nor failures.
    """
    failure_rate_threshold: float = 50.0
    sliding_window_size: int = 10
    minimum_number_of_calls: int = 5
    wait_duration_in_open_state_s: float = 10.0
    permitted_number_of_calls_in_half_open_state: int = 3
    ignore_exceptions: Tuple[Type[BaseException], ...] = SATURATION_ERRORS

    def __post_init__(self):
        if not 0 < self.failure_rate_threshold <= 100:
            raise ValueError("failure_rate_threshold must be in (0, 100]")
        if self.sliding_window_size < 1:
            raise ValueError("sliding_window_size must be at least 1")
        if self.minimum_number_of_calls < 1:
            raise ValueError("minimum_number_of_calls must be at least 1")
        if self.wait_duration_in_open_state_s < 0:
            raise ValueError("wait_duration_in_open_state_s must not be negative")
        if self.permitted_number_of_calls_in_half_open_state < 1:
            raise ValueError("permitted_number_of_calls_in_half_open_state must be at least 1")


class CircuitBreaker:
    """Thread-safe circuit breaker with CLOSED, OPEN and HALF_OPEN states.

    Callers ask for a permission before each call and report the outcome
    afterwards with on_success() or on_error(). A permission that ends
    without an outcome (e.g. cancellation) must be returned with
    release_permission().

    Every permission is the state generation it was issued in. Each state
    transition starts a new generation, and outcomes or releases carrying an
    older one are dropped, so a call admitted while CLOSED can never be
    counted as a half-open trial.
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        event_listener: Optional[Callable[[DomainEvent], None]] = None,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._event_listener = event_listener
        self._lock = threading.RLock()
        self._state = CircuitState.CLOSED
        self._window: Deque[bool] = deque(maxlen=self.config.sliding_window_size)
        self._opened_at = 0.0
        self._generation = 0
        self._half_open_permits = 0
        self._half_open_outcomes: List[bool] = []
        logger.info(
            f"CircuitBreaker '{name}' initialized: threshold={self.config.failure_rate_threshold}%, "
            f"window={self.config.sliding_window_size}, open_wait={self.config.wait_duration_in_open_state_s}s"
        )

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._check_open_timeout()
            return self._state

    @property
    def failure_rate(self) -> float:
        """Failure percentage of the outcomes currently in the closed-state window."""
        with self._lock:
            return self._rate(self._window)

    def acquire_permission(self) -> int:
        """Admits a call or raises CallNotPermittedError.

        Returns:
            The permission, to be handed back to on_success(), on_error()
            or release_permission().
        """
        with self._lock:
            self._check_open_timeout()
            if self._state is CircuitState.OPEN:
                raise CallNotPermittedError(self.name, self._state.value)
            if self._state is CircuitState.HALF_OPEN:
                if self._half_open_permits >= self.config.permitted_number_of_calls_in_half_open_state:
                    raise CallNotPermittedError(self.name, self._state.value)
                self._half_open_permits += 1
            return self._generation

    def release_permission(self, permission: int) -> None:
        """Returns a permission whose call produced no outcome."""
        with self._lock:
            if self._is_stale(permission):
                return
            if self._state is CircuitState.HALF_OPEN and self._half_open_permits > len(self._half_open_outcomes):
                self._half_open_permits -= 1

    def on_success(self, permission: int) -> None:
        self._record(permission, True)

    def on_error(self, permission: int, exc: BaseException) -> None:
        if isinstance(exc, self.config.ignore_exceptions):
            logger.debug(f"CircuitBreaker '{self.name}' ignoring {type(exc).__name__}")
            self.release_permission(permission)
            return
        self._record(permission, False)

    def reset(self) -> None:
        """Forces the breaker back to CLOSED with an empty window."""
        with self._lock:
            self._transition(CircuitState.CLOSED)

    # --- Internals ---

    def _is_stale(self, permission: int) -> bool:
        if permission == self._generation:
            return False
        logger.debug(f"CircuitBreaker '{self.name}' dropping outcome of a call admitted before the last transition")
        return True

    def _record(self, permission: int, success: bool) -> None:
        with self._lock:
            if self._is_stale(permission):
                return
            if self._state is CircuitState.CLOSED:
                self._window.append(success)
                minimum = min(self.config.minimum_number_of_calls, self.config.sliding_window_size)
                if len(self._window) >= minimum and self._rate(self._window) >= self.config.failure_rate_threshold:
                    logger.warning(
                        f"CircuitBreaker '{self.name}' failure rate {self._rate(self._window):.1f}% "
                        f"reached threshold {self.config.failure_rate_threshold}%"
                    )
                    self._transition(CircuitState.OPEN)
            elif self._state is CircuitState.HALF_OPEN:
                self._half_open_outcomes.append(success)
                if len(self._half_open_outcomes) >= self.config.permitted_number_of_calls_in_half_open_state:
                    if self._rate(self._half_open_outcomes) >= self.config.failure_rate_threshold:
                        self._transition(CircuitState.OPEN)
                    else:
                        self._transition(CircuitState.CLOSED)

    def _check_open_timeout(self) -> None:
        if (
            self._state is CircuitState.OPEN
            and self._clock() - self._opened_at >= self.config.wait_duration_in_open_state_s
        ):
            self._transition(CircuitState.HALF_OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        self._generation += 1
        self._window.clear()
        self._half_open_permits = 0
        self._half_open_outcomes = []
        if new_state is CircuitState.OPEN:
            self._opened_at = self._clock()
        if old_state is not new_state:
            logger.info(f"CircuitBreaker '{self.name}' changed state from {old_state.value} to {new_state.value}")
            if self._event_listener:
                self._event_listener(CircuitStateChanged(
                    breaker=self.name, from_state=old_state.value, to_state=new_state.value
                ))

    @staticmethod
    def _rate(outcomes) -> float:
        if not outcomes:
            return 0.0
        failures = sum(1 for ok in outcomes if not ok)
        return failures * 100.0 / len(outcomes)
