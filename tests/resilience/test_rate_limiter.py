import pytest

from callguard.resilience.config import RateLimiterConfig
from callguard.resilience.errors import RateLimitExceededError
from callguard.resilience.rate_limiter import TokenBucketRateLimiter


def make_limiter(clock, **overrides):
    params = dict(max_requests=50, window_seconds=60, burst_size=60)
    params.update(overrides)
    return TokenBucketRateLimiter("test", RateLimiterConfig(**params), clock=clock)


def test_burst_is_admitted_then_rejected(clock):
    limiter = make_limiter(clock)

    for _ in range(60):
        limiter.admit()

    with pytest.raises(RateLimitExceededError) as exc_info:
        limiter.admit()

    # 50 tokens per 60s -> one token every 1.2s
    assert exc_info.value.retry_after == pytest.approx(1.2)
    assert exc_info.value.resource == "test"


def test_tokens_refill_over_time(clock):
    limiter = make_limiter(clock, max_requests=10, window_seconds=10, burst_size=2)

    assert limiter.try_acquire()
    assert limiter.try_acquire()
    assert not limiter.try_acquire()

    clock.advance(1)
    assert limiter.try_acquire()
    assert not limiter.try_acquire()


def test_tokens_never_exceed_burst_size(clock):
    limiter = make_limiter(clock, burst_size=5)

    clock.advance(3600)
    assert limiter.available_tokens == 5

    for _ in range(5):
        limiter.admit()
    with pytest.raises(RateLimitExceededError):
        limiter.admit()


def test_clock_going_backwards_adds_nothing(clock):
    limiter = make_limiter(clock, burst_size=1)

    limiter.admit()
    clock.advance(-10)
    assert not limiter.try_acquire()


def test_get_metrics_does_not_consume_tokens(clock):
    limiter = make_limiter(clock, max_requests=6, window_seconds=60, burst_size=3)
    limiter.admit()

    first = limiter.get_metrics()
    second = limiter.get_metrics()
    assert first == second
    assert first["available_tokens"] == pytest.approx(2.0)
    assert first["max_tokens"] == 3
    assert first["refill_rate"] == pytest.approx(0.1)
