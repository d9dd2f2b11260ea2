import random

import pytest

from callguard.resilience.config import RetryConfig
from callguard.resilience.errors import BulkheadQueueTimeoutError, CircuitOpenError
from callguard.resilience.retry import (
    ExceptionTypeClassifier,
    ExponentialBackoffStrategy,
    RetryStrategy,
    retry,
)
from callguard.resilience.retry.backoff import additive_jitter

pytestmark = pytest.mark.asyncio


class TransientError(Exception):
    pass


def no_jitter(**overrides):
    params = dict(
        max_attempts=3,
        initial_delay_seconds=1.0,
        max_delay_seconds=30.0,
        backoff_multiplier=2.0,
        jitter_factor=0.0,
    )
    params.update(overrides)
    return RetryConfig(**params)


async def test_retry_retries_on_transient_error(no_sleep):
    calls = {"n": 0}

    @retry(config=no_jitter())
    async def sometimes_fails():
        calls["n"] += 1
        if calls["n"] < 3:
            raise TransientError("fail")
        return "ok"

    result = await sometimes_fails()
    assert result == "ok"
    assert calls["n"] == 3
    assert no_sleep == [1.0, 2.0]


async def test_retry_gives_up_with_last_error(no_sleep):
    calls = {"n": 0}

    @retry(config=no_jitter(max_attempts=2))
    async def always_fails():
        calls["n"] += 1
        raise TimeoutError(f"attempt {calls['n']}")

    with pytest.raises(TimeoutError, match="attempt 2"):
        await always_fails()
    assert calls["n"] == 2
    assert len(no_sleep) == 1


async def test_non_retryable_error_fails_immediately(no_sleep):
    calls = {"n": 0}
    strategy = RetryStrategy(no_jitter())

    async def bad_request():
        calls["n"] += 1
        raise ValueError("invalid payload")

    with pytest.raises(ValueError):
        await strategy.execute(bad_request)
    assert calls["n"] == 1
    assert no_sleep == []


async def test_single_attempt_never_sleeps(no_sleep):
    strategy = RetryStrategy(no_jitter(max_attempts=1))

    async def flaky():
        raise ConnectionError("reset")

    with pytest.raises(ConnectionError):
        await strategy.execute(flaky)
    assert no_sleep == []


async def test_admission_rejections_are_not_retried(no_sleep):
    strategy = RetryStrategy(no_jitter())
    calls = {"n": 0}

    async def rejected():
        calls["n"] += 1
        raise BulkheadQueueTimeoutError("db", 5.0)

    with pytest.raises(BulkheadQueueTimeoutError):
        await strategy.execute(rejected)
    assert calls["n"] == 1
    assert not strategy.is_retryable(CircuitOpenError("db", 1.0))


async def test_delays_are_capped(no_sleep):
    strategy = RetryStrategy(
        no_jitter(max_attempts=6, initial_delay_seconds=1.0, max_delay_seconds=5.0)
    )

    async def flaky():
        raise TransientError("still down")

    with pytest.raises(TransientError):
        await strategy.execute(flaky)
    assert no_sleep == [1.0, 2.0, 4.0, 5.0, 5.0]


async def test_custom_classifier(no_sleep):
    strategy = RetryStrategy(
        no_jitter(),
        classifier=ExceptionTypeClassifier(retryable=(KeyError,)),
    )
    calls = {"n": 0}

    async def lookup():
        calls["n"] += 1
        if calls["n"] == 1:
            raise KeyError("cache miss")
        return "value"

    assert await strategy.execute(lookup) == "value"
    assert calls["n"] == 2


async def test_retry_decorator_rejects_strategy_and_config():
    with pytest.raises(TypeError):
        retry(RetryStrategy(), config=RetryConfig())


async def test_jitter_stays_within_bounds():
    strategy = RetryStrategy(no_jitter(jitter_factor=0.5))
    for attempt in range(4):
        base = strategy.backoff.delay(attempt)
        for _ in range(50):
            delay = strategy.compute_delay(attempt)
            assert base <= delay <= base * 1.5


async def test_additive_jitter_uses_random(monkeypatch):
    monkeypatch.setattr(random, "random", lambda: 1.0)
    assert additive_jitter(2.0, 0.1) == pytest.approx(2.2)

    monkeypatch.setattr(random, "random", lambda: 0.0)
    assert additive_jitter(2.0, 0.1) == pytest.approx(2.0)


async def test_backoff_overflow_returns_cap():
    backoff = ExponentialBackoffStrategy(
        initial_delay_seconds=1.0, multiplier=10.0, max_delay_seconds=60.0
    )
    assert backoff.delay(10_000) == 60.0
    assert list(backoff.delays(3)) == [1.0, 10.0, 60.0]


async def test_exhausted_retries_reraise_final_error_object(no_sleep):
    errors = [TransientError(f"attempt {i}") for i in range(1, 4)]
    attempts = iter(errors)
    strategy = RetryStrategy(no_jitter(max_attempts=3))

    async def flaky():
        raise next(attempts)

    with pytest.raises(TransientError) as exc_info:
        await strategy.execute(flaky)
    assert exc_info.value is errors[-1]
    assert no_sleep == [1.0, 2.0]
