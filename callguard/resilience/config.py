"""
Validated configuration models for every resilience component.

Invalid values raise `pydantic.ValidationError` at construction time; nothing
is silently clamped.
"""

from __future__ import annotations

from typing import Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, model_validator

from callguard.core.config import DEFAULT_RETRY_ERROR_PATTERNS, Settings, settings


class _FrozenConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class CircuitBreakerConfig(_FrozenConfig):
    """Thresholds and timings for a circuit breaker."""

    # Failures inside the monitoring period before the circuit opens
    failure_threshold: int = Field(default=5, ge=1)

    # Consecutive half-open successes before the circuit closes
    success_threshold: int = Field(default=2, ge=1)

    # Seconds to stay OPEN before a probe is admitted
    timeout_seconds: float = Field(default=60.0, gt=0)

    # Sliding window for counting failures
    monitoring_period_seconds: float = Field(default=120.0, gt=0)

    # Exceptions that never count as failures
    ignored_exceptions: Tuple[Type[BaseException], ...] = ()


class BulkheadConfig(_FrozenConfig):
    """Concurrency cap and wait queue for a bulkhead."""

    max_concurrent: int = Field(default=10, ge=1)
    max_queue: int = Field(default=20, ge=0)
    queue_timeout_seconds: float = Field(default=30.0, gt=0)


class RateLimiterConfig(_FrozenConfig):
    """Token bucket sizing: `max_requests` per `window_seconds`, capped at `burst_size`."""

    max_requests: int = Field(default=50, ge=1)
    window_seconds: float = Field(default=60.0, gt=0)
    burst_size: int = Field(default=60, ge=1)

    @property
    def refill_rate(self) -> float:
        """Tokens added per second."""
        return self.max_requests / self.window_seconds


class RetryConfig(_FrozenConfig):
    """Attempt budget and exponential backoff parameters."""

    max_attempts: int = Field(default=3, ge=1)
    initial_delay_seconds: float = Field(default=1.0, ge=0)
    max_delay_seconds: float = Field(default=30.0, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0)
    jitter_factor: float = Field(default=0.1, ge=0, le=1)
    retryable_error_patterns: Tuple[str, ...] = DEFAULT_RETRY_ERROR_PATTERNS

    @model_validator(mode="after")
    def _check_delays(self) -> "RetryConfig":
        if self.max_delay_seconds < self.initial_delay_seconds:
            raise ValueError("max_delay_seconds must be >= initial_delay_seconds")
        return self


class ConnectionPoolConfig(_FrozenConfig):
    """Transport-level pool sizing and timeouts."""

    connections: int = Field(default=10, ge=1)
    connect_timeout_seconds: float = Field(default=10.0, gt=0)
    body_timeout_seconds: float = Field(default=30.0, gt=0)
    keep_alive_timeout_seconds: float = Field(default=60.0, gt=0)


class ResilienceConfig(_FrozenConfig):
    """Complete configuration for one protected resource."""

    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    bulkhead: BulkheadConfig = Field(default_factory=BulkheadConfig)
    rate_limiter: RateLimiterConfig = Field(default_factory=RateLimiterConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    pool: ConnectionPoolConfig = Field(default_factory=ConnectionPoolConfig)

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "ResilienceConfig":
        """Build a configuration from environment-backed settings."""
        s = source or settings
        return cls(
            circuit_breaker=CircuitBreakerConfig(
                failure_threshold=s.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
                success_threshold=s.CIRCUIT_BREAKER_SUCCESS_THRESHOLD,
                timeout_seconds=s.CIRCUIT_BREAKER_TIMEOUT_SECONDS,
                monitoring_period_seconds=s.CIRCUIT_BREAKER_MONITORING_PERIOD_SECONDS,
            ),
            bulkhead=BulkheadConfig(
                max_concurrent=s.BULKHEAD_MAX_CONCURRENT,
                max_queue=s.BULKHEAD_MAX_QUEUE,
                queue_timeout_seconds=s.BULKHEAD_QUEUE_TIMEOUT_SECONDS,
            ),
            rate_limiter=RateLimiterConfig(
                max_requests=s.RATE_LIMIT_MAX_REQUESTS,
                window_seconds=s.RATE_LIMIT_WINDOW_SECONDS,
                burst_size=s.RATE_LIMIT_BURST_SIZE,
            ),
            retry=RetryConfig(
                max_attempts=s.RETRY_MAX_ATTEMPTS,
                initial_delay_seconds=s.RETRY_INITIAL_DELAY_SECONDS,
                max_delay_seconds=s.RETRY_MAX_DELAY_SECONDS,
                backoff_multiplier=s.RETRY_BACKOFF_MULTIPLIER,
                jitter_factor=s.RETRY_JITTER_FACTOR,
                retryable_error_patterns=tuple(s.RETRY_ERROR_PATTERNS),
            ),
            pool=ConnectionPoolConfig(
                connections=s.POOL_CONNECTIONS,
                connect_timeout_seconds=s.POOL_CONNECT_TIMEOUT_SECONDS,
                body_timeout_seconds=s.POOL_BODY_TIMEOUT_SECONDS,
                keep_alive_timeout_seconds=s.POOL_KEEP_ALIVE_TIMEOUT_SECONDS,
            ),
        )
