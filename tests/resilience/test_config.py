import pytest
from pydantic import ValidationError

from callguard.core.config import Settings
from callguard.resilience.config import (
    BulkheadConfig,
    CircuitBreakerConfig,
    RateLimiterConfig,
    ResilienceConfig,
    RetryConfig,
)


@pytest.mark.parametrize(
    "factory",
    [
        lambda: CircuitBreakerConfig(failure_threshold=0),
        lambda: CircuitBreakerConfig(timeout_seconds=0),
        lambda: BulkheadConfig(max_concurrent=0),
        lambda: BulkheadConfig(max_queue=-1),
        lambda: RateLimiterConfig(window_seconds=0),
        lambda: RetryConfig(max_attempts=0),
        lambda: RetryConfig(jitter_factor=1.5),
        lambda: RetryConfig(initial_delay_seconds=10, max_delay_seconds=1),
    ],
)
def test_invalid_values_are_rejected(factory):
    with pytest.raises(ValidationError):
        factory()


def test_unknown_fields_are_rejected():
    with pytest.raises(ValidationError):
        BulkheadConfig(max_concurent=5)


def test_configs_are_immutable():
    config = BulkheadConfig()
    with pytest.raises(ValidationError):
        config.max_concurrent = 99


def test_refill_rate():
    assert RateLimiterConfig(
        max_requests=50, window_seconds=60, burst_size=60
    ).refill_rate == pytest.approx(50 / 60)


def test_from_settings_reads_environment(monkeypatch):
    monkeypatch.setenv("CIRCUIT_BREAKER_FAILURE_THRESHOLD", "7")
    monkeypatch.setenv("BULKHEAD_MAX_QUEUE", "0")
    monkeypatch.setenv("RETRY_ERROR_PATTERNS", '["timeout", "overloaded"]')

    config = ResilienceConfig.from_settings(Settings())

    assert config.circuit_breaker.failure_threshold == 7
    assert config.bulkhead.max_queue == 0
    assert config.retry.retryable_error_patterns == ("timeout", "overloaded")


def test_settings_reject_inverted_retry_delays(monkeypatch):
    monkeypatch.setenv("RETRY_INITIAL_DELAY_SECONDS", "5")
    monkeypatch.setenv("RETRY_MAX_DELAY_SECONDS", "1")

    with pytest.raises(ValidationError):
        Settings()
