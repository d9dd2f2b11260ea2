import pytest

from callguard.resilience.client import ResilientClient
from callguard.resilience.config import CircuitBreakerConfig, ResilienceConfig, RetryConfig
from callguard.resilience.registry import (
    ResilienceRegistry,
    get_default_registry,
    get_resilient_client,
)

pytestmark = pytest.mark.asyncio


@pytest.fixture
def config():
    return ResilienceConfig(
        circuit_breaker=CircuitBreakerConfig(failure_threshold=1),
        retry=RetryConfig(max_attempts=1),
    )


async def failing():
    raise RuntimeError("boom")


async def test_get_returns_same_client_per_resource(config):
    registry = ResilienceRegistry(config)

    first = registry.get("billing")
    assert registry.get("billing") is first
    assert registry.get("search") is not first
    assert sorted(registry.resources()) == ["billing", "search"]
    assert "billing" in registry


async def test_register_rejects_duplicates(config):
    registry = ResilienceRegistry(config)
    registry.register(ResilientClient("billing", config))

    with pytest.raises(ValueError):
        registry.register(ResilientClient("billing", config))


async def test_reset_single_and_all(config):
    registry = ResilienceRegistry(config)
    billing = registry.get("billing")
    search = registry.get("search")

    for client in (billing, search):
        with pytest.raises(RuntimeError):
            await client.execute(failing)

    registry.reset("billing")
    assert registry.snapshot()["billing"]["circuit_breaker"]["state"] == "closed"
    assert registry.snapshot()["search"]["circuit_breaker"]["state"] == "open"

    registry.reset()
    assert registry.snapshot()["search"]["circuit_breaker"]["state"] == "closed"

    with pytest.raises(KeyError):
        registry.reset("unknown")


async def test_default_registry_helper():
    client = get_resilient_client("default-registry-probe")
    assert get_resilient_client("default-registry-probe") is client
    assert "default-registry-probe" in get_default_registry()
