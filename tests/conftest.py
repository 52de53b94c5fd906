import json
from typing import Callable, List, Optional

import httpx
import pytest

from jokegate.infrastructure.adapters.resilient_joke_client import ResilientJokeClient
from jokegate.infrastructure.config import settings
from jokegate.infrastructure.http.chuck_norris_api import ChuckNorrisApi
from jokegate.infrastructure.resilience.api_retry import RetryConfig
from jokegate.infrastructure.resilience.policy import PolicyGroupConfig
from jokegate.infrastructure.resilience.registry import PolicyRegistry

BASE_URL = "https://api.test"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def no_sleep(delay: float) -> None:
    return None


class JokeApiStub:
    """httpx handler faking both joke endpoints and counting requests."""

    def __init__(self, categories=None, joke=None, status_code: int = 200):
        self.categories = categories if categories is not None else ["dev", "food"]
        self.joke = joke if joke is not None else {
            "value": "Chuck Norris can unit test an entire application with a single assert.",
            "categories": ["dev"],
            "id": "abc123",
            "icon_url": "https://api.test/img/avatar.png",
            "url": "https://api.test/jokes/abc123",
            "created_at": "2020-01-05 13:42:19.104863",
        }
        self.status_code = status_code
        self.error: Optional[Exception] = None
        self.requests: List[httpx.Request] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "Internal Server Error"})
        if request.url.path == "/jokes/categories":
            return httpx.Response(200, content=json.dumps(self.categories).encode())
        if request.url.path == "/jokes/random":
            return httpx.Response(200, json=self.joke)
        return httpx.Response(404, json={"error": "Not Found"})


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keeps loaded and test configuration from leaking between tests."""
    monkeypatch.setattr(settings, "_config", {})
    monkeypatch.setattr(settings, "_loaded", False)
    settings.clear_test_config()
    yield
    settings.clear_test_config()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def api_stub() -> JokeApiStub:
    return JokeApiStub()


@pytest.fixture
def make_client(clock) -> Callable[..., ResilientJokeClient]:
    def factory(handler, config: Optional[PolicyGroupConfig] = None, **kwargs) -> ResilientJokeClient:
        config = config or PolicyGroupConfig(retry=RetryConfig(max_attempts=3, wait_duration_s=0))
        registry = PolicyRegistry(config_loader=lambda name: config, clock=clock, sleep=no_sleep)
        api = ChuckNorrisApi(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        return ResilientJokeClient(api=api, registry=registry, **kwargs)

    return factory
