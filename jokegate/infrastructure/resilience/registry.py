"""Registry of named resilience policy groups.

Every caller asking for the same name gets the same ResiliencePolicy, so
operations guarded by one group share breaker, limiter and bulkhead state.
"""

import asyncio
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from jokegate.domain.events.resilience_events import DomainEvent
from jokegate.infrastructure.config.settings import get_config
from jokegate.infrastructure.resilience.api_retry import RetryConfig
from jokegate.infrastructure.resilience.bulkhead import BulkheadConfig
from jokegate.infrastructure.resilience.circuit_breaker import CircuitBreakerConfig
from jokegate.infrastructure.resilience.policy import PolicyGroupConfig, ResiliencePolicy, log_event
from jokegate.infrastructure.resilience.rate_limiter import RateLimiterConfig

logger = logging.getLogger(__name__)

_SECTIONS = {
    "circuit_breaker": CircuitBreakerConfig,
    "rate_limiter": RateLimiterConfig,
    "bulkhead": BulkheadConfig,
    "retry": RetryConfig,
}
# Exception tuples are code, not configuration
_CODE_ONLY_FIELDS = {"ignore_exceptions", "retry_exceptions"}


def load_policy_group_config(name: str) -> PolicyGroupConfig:
    """Reads 'resilience.<name>.<policy>.<field>' settings for every policy."""
    sections: Dict[str, Dict[str, Any]] = {}
    for section, config_cls in _SECTIONS.items():
        values = {}
        for field_name in config_cls.__dataclass_fields__:
            if field_name in _CODE_ONLY_FIELDS:
                continue
            value = get_config(f"resilience.{name}.{section}.{field_name}")
            if value is not None:
                values[field_name] = value
        sections[section] = values
    logger.debug(f"Policy group '{name}' settings: {sections}")
    return PolicyGroupConfig.from_mapping(sections)


class PolicyRegistry:
    """Creates policy groups on first use and hands out the shared instances."""

    def __init__(
        self,
        config_loader: Callable[[str], PolicyGroupConfig] = load_policy_group_config,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Any] = asyncio.sleep,
        event_listener: Callable[[DomainEvent], None] = log_event,
    ):
        self._config_loader = config_loader
        self._clock = clock
        self._sleep = sleep
        self._event_listener = event_listener
        self._policies: Dict[str, ResiliencePolicy] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> ResiliencePolicy:
        with self._lock:
            policy = self._policies.get(name)
            if policy is None:
                policy = self._create(name, self._config_loader(name))
                self._policies[name] = policy
            return policy

    def register(self, name: str, config: PolicyGroupConfig) -> ResiliencePolicy:
        """Creates (or replaces) a group from an explicit config."""
        with self._lock:
            policy = self._create(name, config)
            self._policies[name] = policy
            return policy

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._policies)

    def _create(self, name: str, config: PolicyGroupConfig) -> ResiliencePolicy:
        logger.info(f"Creating resilience policy group '{name}'")
        return ResiliencePolicy.from_config(
            name, config, clock=self._clock, sleep=self._sleep, event_listener=self._event_listener
        )


_default_registry: Optional[PolicyRegistry] = None


def default_registry() -> PolicyRegistry:
    """Process-wide registry used when none is injected."""
    global _default_registry
    if _default_registry is None:
        _default_registry = PolicyRegistry()
    return _default_registry
