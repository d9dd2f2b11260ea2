"""
Composition of the resilience stack around a single outbound call.

Wrapping order, outermost first:

    RateLimiter -> Bulkhead -> CircuitBreaker -> RetryStrategy -> operation

The two admission gates run before any breaker bookkeeping, and the breaker
wraps the whole retry loop so one logical call counts as one breaker outcome
no matter how many attempts it took.
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from callguard.resilience.bulkhead.isolator import Bulkhead
from callguard.resilience.circuit_breaker.breaker import CircuitBreaker, CircuitState
from callguard.resilience.config import ResilienceConfig
from callguard.resilience.connection_pool import ConnectionPool, PooledResponse
from callguard.resilience.rate_limiter import TokenBucketRateLimiter
from callguard.resilience.retry.classifiers import ErrorClassifier
from callguard.resilience.retry.policy import RetryStrategy
from callguard.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ResilientClient:
    """
    Resilience stack bound to one named resource.

    Owns exactly one breaker, bulkhead, rate limiter and retry strategy; none
    of them is shared with another resource.

    Usage:
        client = ResilientClient("payments-api", ResilienceConfig.from_settings())
        receipt = await client.execute(charge_card, order_id)
    """

    def __init__(
        self,
        resource: str,
        config: Optional[ResilienceConfig] = None,
        *,
        pool: Optional[ConnectionPool] = None,
        classifier: Optional[ErrorClassifier] = None,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Optional[Callable[[CircuitState, CircuitState], None]] = None,
    ) -> None:
        self.resource = resource
        self.config = config or ResilienceConfig.from_settings()

        self.rate_limiter = TokenBucketRateLimiter(
            resource, self.config.rate_limiter, clock=clock
        )
        self.bulkhead = Bulkhead(resource, self.config.bulkhead)
        self.circuit_breaker = CircuitBreaker(
            resource,
            self.config.circuit_breaker,
            clock=clock,
            on_state_change=on_state_change,
        )
        self.retry = RetryStrategy(
            self.config.retry, classifier=classifier, name=resource
        )
        self._pool = pool

    @property
    def pool(self) -> ConnectionPool:
        """Connection pool for `request()`, created on first use."""
        if self._pool is None:
            self._pool = ConnectionPool(self.resource, self.config.pool)
        return self._pool

    async def __aenter__(self) -> "ResilientClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def execute(
        self, operation: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """
        Run `operation` through the full chain.

        Raises:
            RateLimitExceededError: no token available
            BulkheadFullError: no slot and the wait queue is full
            BulkheadQueueTimeoutError: waited too long for a slot
            CircuitOpenError: circuit open, or half-open probe already running
            Exception: the operation's own last error, unchanged
        """
        self.rate_limiter.admit()
        async with self.bulkhead.acquire():
            return await self.circuit_breaker.call(
                self.retry.execute, operation, *args, **kwargs
            )

    async def request(self, method: str, url: str, **kwargs: Any) -> PooledResponse:
        """Send one HTTP request over the pool through the full chain."""
        return await self.execute(self.pool.request, method, url, **kwargs)

    def get_metrics(self) -> Dict[str, Any]:
        """Read-only snapshot for health and observability collaborators."""
        return {
            "resource": self.resource,
            "circuit_breaker": self.circuit_breaker.get_metrics(),
            "bulkhead": self.bulkhead.get_metrics(),
            "rate_limiter": self.rate_limiter.get_metrics(),
        }

    def reset(self) -> None:
        """Operator override: force the circuit CLOSED and clear its failure history."""
        logger.info("resilient_client_reset", resource=self.resource)
        self.circuit_breaker.reset()

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
