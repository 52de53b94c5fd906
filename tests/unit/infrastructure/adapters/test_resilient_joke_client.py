import asyncio
import logging

import httpx
import pytest

from jokegate.domain.models.joke import FALLBACK_JOKE, Joke
from jokegate.infrastructure.resilience.api_retry import RetryConfig
from jokegate.infrastructure.resilience.bulkhead import BulkheadConfig
from jokegate.infrastructure.resilience.circuit_breaker import CircuitBreakerConfig, CircuitState
from jokegate.infrastructure.resilience.policy import PolicyGroupConfig
from jokegate.infrastructure.resilience.rate_limiter import RateLimiterConfig


@pytest.fixture
def mock_logger(mocker):
    return mocker.MagicMock(spec=logging.Logger)


@pytest.fixture
def breaker_config():
    """Opens after 4 failed single-attempt calls, one trial call when half-open."""
    return PolicyGroupConfig(
        circuit_breaker=CircuitBreakerConfig(
            failure_rate_threshold=50,
            sliding_window_size=4,
            minimum_number_of_calls=4,
            wait_duration_in_open_state_s=10,
            permitted_number_of_calls_in_half_open_state=1,
        ),
        retry=RetryConfig(max_attempts=1),
    )


# --- Happy path ---

@pytest.mark.asyncio
async def test_get_joke_maps_payload(make_client, api_stub):
    client = make_client(api_stub)

    joke = await client.get_joke("dev")

    assert joke == Joke(text=api_stub.joke["value"], category="dev")
    assert api_stub.call_count == 1


@pytest.mark.asyncio
async def test_get_joke_uses_requested_category_when_payload_has_none(make_client, api_stub):
    api_stub.joke = {"value": "Chuck Norris can divide by zero."}
    client = make_client(api_stub)

    joke = await client.get_joke("science")

    assert joke == Joke(text="Chuck Norris can divide by zero.", category="science")


@pytest.mark.asyncio
async def test_random_category_is_one_of_upstream_categories(make_client, api_stub):
    client = make_client(api_stub)

    assert await client.get_random_category() in {"dev", "food"}


@pytest.mark.asyncio
async def test_random_category_uses_chooser(make_client, api_stub):
    client = make_client(api_stub, chooser=lambda categories: categories[-1])

    assert await client.get_random_category() == "food"


@pytest.mark.asyncio
async def test_empty_category_list_returns_default(make_client, api_stub, mock_logger):
    api_stub.categories = []
    client = make_client(api_stub, logger=mock_logger)

    assert await client.get_random_category() == "dev"
    mock_logger.error.assert_not_called()


@pytest.mark.asyncio
async def test_repeated_random_category_calls_stay_in_upstream_list(make_client, api_stub):
    config = PolicyGroupConfig(rate_limiter=RateLimiterConfig(limit_for_period=100))
    client = make_client(api_stub, config=config)

    results = {await client.get_random_category() for _ in range(20)}

    assert results <= {"dev", "food"}
    assert api_stub.call_count == 20


# --- Fallbacks ---

@pytest.mark.asyncio
async def test_get_joke_falls_back_after_retries(make_client, api_stub, mock_logger):
    api_stub.status_code = 500
    client = make_client(api_stub, logger=mock_logger)

    joke = await client.get_joke("dev")

    assert joke == FALLBACK_JOKE
    assert joke == Joke(text="Temporarily unavailable", category="dev")
    assert api_stub.call_count == 3
    mock_logger.error.assert_called_once()
    message = mock_logger.error.call_args.args[0]
    assert "get_joke" in message
    assert "Category: dev" in message
    assert "status: 500" in message


@pytest.mark.asyncio
async def test_get_random_category_falls_back_on_connection_error(make_client, api_stub, mock_logger):
    api_stub.error = httpx.ConnectError("connection refused")
    client = make_client(api_stub, logger=mock_logger)

    assert await client.get_random_category() == "dev"
    assert api_stub.call_count == 3
    assert "get_random_category" in mock_logger.error.call_args.args[0]


@pytest.mark.asyncio
async def test_malformed_payload_is_retried_then_falls_back(make_client, api_stub):
    api_stub.joke = {"categories": ["dev"], "icon_url": "https://api.test/img.png"}
    client = make_client(api_stub)

    assert await client.get_joke("dev") == FALLBACK_JOKE
    assert api_stub.call_count == 3


@pytest.mark.asyncio
async def test_recovers_when_upstream_recovers_between_attempts(make_client, api_stub):
    responses = iter([httpx.Response(502), httpx.Response(200, json=["dev"])])
    client = make_client(lambda request: next(responses))

    assert await client.get_random_category() == "dev"


# --- Circuit breaker ---

@pytest.mark.asyncio
async def test_open_circuit_skips_network(make_client, api_stub, breaker_config):
    api_stub.status_code = 500
    client = make_client(api_stub, config=breaker_config)

    for _ in range(4):
        assert await client.get_joke("dev") == FALLBACK_JOKE
    assert api_stub.call_count == 4
    assert client.policy.circuit_breaker.state is CircuitState.OPEN

    for _ in range(5):
        assert await client.get_joke("dev") == FALLBACK_JOKE
    assert api_stub.call_count == 4


@pytest.mark.asyncio
async def test_operations_share_circuit_breaker(make_client, api_stub, breaker_config):
    api_stub.status_code = 500
    client = make_client(api_stub, config=breaker_config)
    for _ in range(4):
        await client.get_joke("dev")

    api_stub.status_code = 200
    assert await client.get_random_category() == "dev"
    assert api_stub.call_count == 4


@pytest.mark.asyncio
async def test_half_open_trial_closes_circuit(make_client, api_stub, breaker_config, clock):
    api_stub.status_code = 500
    client = make_client(api_stub, config=breaker_config)
    for _ in range(4):
        await client.get_joke("dev")

    api_stub.status_code = 200
    clock.advance(10)
    joke = await client.get_joke("dev")

    assert joke.text == api_stub.joke["value"]
    assert client.policy.circuit_breaker.state is CircuitState.CLOSED
    assert api_stub.call_count == 5


@pytest.mark.asyncio
async def test_failed_half_open_trial_reopens_circuit(make_client, api_stub, breaker_config, clock):
    api_stub.status_code = 500
    client = make_client(api_stub, config=breaker_config)
    for _ in range(4):
        await client.get_joke("dev")

    clock.advance(10)
    assert await client.get_joke("dev") == FALLBACK_JOKE
    assert client.policy.circuit_breaker.state is CircuitState.OPEN
    assert api_stub.call_count == 5

    await client.get_joke("dev")
    assert api_stub.call_count == 5


# --- Saturation ---

@pytest.mark.asyncio
async def test_rate_limited_calls_fall_back_without_network(make_client, api_stub, mock_logger):
    config = PolicyGroupConfig(rate_limiter=RateLimiterConfig(limit_for_period=2, limit_refresh_period_s=60))
    client = make_client(api_stub, config=config, logger=mock_logger)

    await client.get_random_category()
    await client.get_joke("dev")
    assert await client.get_joke("dev") == FALLBACK_JOKE

    assert api_stub.call_count == 2
    assert "RateLimiter" in mock_logger.error.call_args.args[0]
    assert client.policy.circuit_breaker.failure_rate == 0.0


@pytest.mark.asyncio
async def test_bulkhead_rejects_calls_beyond_limit(make_client, api_stub):
    entered = asyncio.Event()
    gate = asyncio.Event()

    async def slow_handler(request):
        entered.set()
        await gate.wait()
        return api_stub(request)

    config = PolicyGroupConfig(bulkhead=BulkheadConfig(max_concurrent_calls=1))
    client = make_client(slow_handler, config=config)

    first = asyncio.create_task(client.get_joke("dev"))
    await entered.wait()

    assert await client.get_joke("dev") == FALLBACK_JOKE
    assert await client.get_random_category() == "dev"
    assert api_stub.call_count == 0

    gate.set()
    assert (await first).text == api_stub.joke["value"]
    assert api_stub.call_count == 1


@pytest.mark.asyncio
async def test_cancelled_call_releases_bulkhead_slot(make_client, api_stub):
    entered = asyncio.Event()

    async def hanging_handler(request):
        entered.set()
        await asyncio.Event().wait()

    config = PolicyGroupConfig(bulkhead=BulkheadConfig(max_concurrent_calls=1))
    client = make_client(hanging_handler, config=config)

    task = asyncio.create_task(client.get_joke("dev"))
    await entered.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert client.policy.bulkhead.available_slots == 1
