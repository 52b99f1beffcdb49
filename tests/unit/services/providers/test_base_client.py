"""Unit tests for BaseAPIClient retry and circuit breaker behavior."""

from datetime import timedelta

import httpx
import pytest
import respx
from httpx import Response

from tokenwatch.core.exceptions import CircuitBreakerOpenError, ExternalServiceError
from tokenwatch.services.base import BaseAPIClient, CircuitBreaker, CircuitState

BASE_URL = "https://api.example.test"


@pytest.fixture
def client():
    """BaseAPIClient with no backoff delay."""
    return BaseAPIClient(
        base_url=BASE_URL,
        max_retries=3,
        retry_backoff_seconds=0,
        circuit_breaker_threshold=3,
    )


@pytest.mark.asyncio
@respx.mock
async def test_success_returns_response(client):
    respx.get(f"{BASE_URL}/ping").mock(return_value=Response(200, json={"ok": True}))

    response = await client.get("/ping")

    assert response.json() == {"ok": True}
    await client.close()


@pytest.mark.asyncio
@respx.mock
async def test_retries_server_errors_then_succeeds(client):
    """Test 5xx is retried within the attempt budget."""
    # ARRANGE
    route = respx.get(f"{BASE_URL}/flaky").mock(
        side_effect=[Response(503), Response(502), Response(200, json={})]
    )

    # ACT
    response = await client.get("/flaky")

    # ASSERT
    assert response.status_code == 200
    assert route.call_count == 3
    await client.close()


@pytest.mark.asyncio
@respx.mock
async def test_client_error_not_retried(client):
    """Test 4xx other than 429 fails immediately with its status code."""
    route = respx.get(f"{BASE_URL}/missing").mock(return_value=Response(404))

    with pytest.raises(ExternalServiceError) as exc_info:
        await client.get("/missing")

    assert exc_info.value.status_code == 404
    assert route.call_count == 1
    await client.close()


@pytest.mark.asyncio
@respx.mock
async def test_rate_limit_is_retried(client):
    route = respx.get(f"{BASE_URL}/limited").mock(return_value=Response(429))

    with pytest.raises(ExternalServiceError) as exc_info:
        await client.get("/limited")

    assert exc_info.value.status_code == 429
    assert route.call_count == 3
    await client.close()


@pytest.mark.asyncio
@respx.mock
async def test_single_attempt_when_max_retries_is_one():
    client = BaseAPIClient(base_url=BASE_URL, max_retries=1)
    route = respx.get(f"{BASE_URL}/down").mock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(ExternalServiceError):
        await client.get("/down")

    assert route.call_count == 1
    await client.close()


@pytest.mark.asyncio
@respx.mock
async def test_circuit_opens_after_threshold(client):
    """Test repeated failures open the circuit and block further calls."""
    # ARRANGE
    route = respx.get(f"{BASE_URL}/down").mock(return_value=Response(500))

    # ACT
    with pytest.raises(ExternalServiceError):
        await client.get("/down")

    # ASSERT
    assert client._circuit_breaker.state == CircuitState.OPEN
    with pytest.raises(CircuitBreakerOpenError):
        await client.get("/down")
    assert route.call_count == 3
    await client.close()


class TestCircuitBreaker:
    """Tests for CircuitBreaker state transitions."""

    def test_half_open_after_cooldown(self):
        breaker = CircuitBreaker(failure_threshold=1, cooldown_seconds=0)
        breaker.record_failure()
        breaker.last_failure_time -= timedelta(seconds=1)

        assert breaker.state == CircuitState.OPEN
        assert breaker.can_execute() is True
        assert breaker.state == CircuitState.HALF_OPEN

    def test_half_open_failure_reopens(self):
        breaker = CircuitBreaker(failure_threshold=1, cooldown_seconds=0)
        breaker.record_failure()
        breaker.last_failure_time -= timedelta(seconds=1)
        breaker.can_execute()

        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN

    def test_success_closes(self):
        breaker = CircuitBreaker(failure_threshold=2)
        breaker.record_failure()
        breaker.record_success()

        assert breaker.failure_count == 0
        assert breaker.state == CircuitState.CLOSED
