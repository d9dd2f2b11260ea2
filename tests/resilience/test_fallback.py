import pytest

from callguard.resilience.client import ResilientClient
from callguard.resilience.config import (
    RateLimiterConfig,
    ResilienceConfig,
    RetryConfig,
)
from callguard.resilience.errors import RateLimitExceededError
from callguard.resilience.fallback import FallbackChain

pytestmark = pytest.mark.asyncio


def make_client(name, burst_size=10):
    return ResilientClient(
        name,
        ResilienceConfig(
            rate_limiter=RateLimiterConfig(
                max_requests=1, window_seconds=60, burst_size=burst_size
            ),
            retry=RetryConfig(max_attempts=1),
        ),
    )


async def test_falls_back_when_primary_is_rate_limited():
    primary = make_client("openai", burst_size=1)
    secondary = make_client("anthropic")
    chain = FallbackChain([primary, secondary])

    def operation_for(client):
        async def ask():
            return f"answer from {client.resource}"

        return ask

    assert await chain.execute(operation_for) == "answer from openai"
    assert await chain.execute(operation_for) == "answer from anthropic"


async def test_reraises_last_error_when_all_fail():
    chain = FallbackChain([make_client("a"), make_client("b")])
    seen = []

    def operation_for(client):
        async def ask():
            seen.append(client.resource)
            raise RuntimeError(f"{client.resource} down")

        return ask

    with pytest.raises(RuntimeError, match="b down"):
        await chain.execute(operation_for)
    assert seen == ["a", "b"]


async def test_unmatched_errors_propagate_immediately():
    chain = FallbackChain(
        [make_client("a"), make_client("b")],
        fallback_on=(RateLimitExceededError,),
    )
    seen = []

    def operation_for(client):
        async def ask():
            seen.append(client.resource)
            raise ValueError("bad prompt")

        return ask

    with pytest.raises(ValueError):
        await chain.execute(operation_for)
    assert seen == ["a"]


async def test_empty_chain_is_rejected():
    with pytest.raises(ValueError):
        FallbackChain([])


async def test_single_client_failure_is_reraised_unchanged():
    chain = FallbackChain([make_client("only")])
    error = RuntimeError("only down")

    def operation_for(client):
        async def ask():
            raise error

        return ask

    with pytest.raises(RuntimeError) as exc_info:
        await chain.execute(operation_for)
    assert exc_info.value is error


async def test_chain_emptied_after_construction_raises():
    chain = FallbackChain([make_client("a")])
    chain.clients.clear()

    with pytest.raises(RuntimeError, match="no clients"):
        await chain.execute(lambda client: None)
