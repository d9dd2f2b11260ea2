"""
Resilience stack for outbound calls: rate limiter, bulkhead, circuit breaker, retry, connection pool.

Each protected resource (an external API, database or model provider) gets its
own `ResilientClient`, which applies the gates in a fixed order:

    RateLimiter -> Bulkhead -> CircuitBreaker -> RetryStrategy -> operation

All modules are async-first, structured-logging enabled, and export Prometheus
metrics. Defaults come from `callguard.core.config`.
"""

from .bulkhead.isolator import Bulkhead
from .circuit_breaker.breaker import CircuitBreaker, CircuitState
from .client import ResilientClient
from .config import (
    BulkheadConfig,
    CircuitBreakerConfig,
    ConnectionPoolConfig,
    RateLimiterConfig,
    ResilienceConfig,
    RetryConfig,
)
from .connection_pool import ConnectionPool, PooledResponse
from .errors import (
    AdmissionRejectedError,
    BulkheadFullError,
    BulkheadQueueTimeoutError,
    CircuitOpenError,
    RateLimitExceededError,
    ResilienceError,
    TransientUpstreamError,
    UpstreamError,
    UpstreamRequestError,
)
from .fallback import FallbackChain
from .health import HealthStatus, ResilienceHealthChecker
from .rate_limiter import TokenBucketRateLimiter
from .registry import ResilienceRegistry, get_resilient_client
from .retry import (
    ExceptionTypeClassifier,
    PatternErrorClassifier,
    RetryStrategy,
    retry,
)

__all__ = [
    "ResilientClient",
    "ResilienceRegistry",
    "get_resilient_client",
    "FallbackChain",
    "ResilienceHealthChecker",
    "HealthStatus",
    "CircuitBreaker",
    "CircuitState",
    "Bulkhead",
    "TokenBucketRateLimiter",
    "RetryStrategy",
    "retry",
    "PatternErrorClassifier",
    "ExceptionTypeClassifier",
    "ConnectionPool",
    "PooledResponse",
    "ResilienceConfig",
    "CircuitBreakerConfig",
    "BulkheadConfig",
    "RateLimiterConfig",
    "RetryConfig",
    "ConnectionPoolConfig",
    "ResilienceError",
    "AdmissionRejectedError",
    "CircuitOpenError",
    "BulkheadFullError",
    "BulkheadQueueTimeoutError",
    "RateLimitExceededError",
    "UpstreamError",
    "TransientUpstreamError",
    "UpstreamRequestError",
]
