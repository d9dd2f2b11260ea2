"""
In-process token bucket rate limiting.

Rate limiting here is a hard admission gate: a call either takes a token or is
rejected with `RateLimitExceededError`. Nothing is queued; waiting for capacity
is the bulkhead's job.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Optional

from callguard.resilience.config import RateLimiterConfig
from callguard.resilience.errors import RateLimitExceededError
from callguard.resilience.metrics import resilience_metrics
from callguard.utils.logger import get_logger

logger = get_logger(__name__)


class TokenBucketRateLimiter:
    """
    Continuous-refill token bucket with burst capacity.

    Tokens refill lazily on every check at `max_requests / window_seconds` per
    second and never exceed `burst_size`. The bucket starts full, so a burst of
    `burst_size` calls is admitted instantly.
    """

    def __init__(
        self,
        name: str,
        config: Optional[RateLimiterConfig] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.config = config or RateLimiterConfig()
        self.capacity = float(self.config.burst_size)
        self.refill_rate = self.config.refill_rate
        self._clock = clock
        self._tokens = self.capacity
        self._last_refill = clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        """Add tokens for the time passed (called under lock)."""
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_rate)
        self._last_refill = now

    def _seconds_until_token(self) -> float:
        missing = max(0.0, 1.0 - self._tokens)
        return missing / self.refill_rate

    def try_acquire(self) -> bool:
        """Take one token if available."""
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    def admit(self) -> None:
        """
        Take one token or reject the call.

        Raises:
            RateLimitExceededError: the bucket holds less than one token
        """
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return
            retry_after = self._seconds_until_token()

        resilience_metrics.inc_rate_limited(self.name)
        logger.warning(
            "rate_limit_exceeded",
            resource=self.name,
            retry_after_s=round(retry_after, 3),
        )
        raise RateLimitExceededError(self.name, retry_after)

    @property
    def available_tokens(self) -> float:
        """Tokens that would be available now, computed without refilling the bucket."""
        elapsed = max(0.0, self._clock() - self._last_refill)
        return min(self.capacity, self._tokens + elapsed * self.refill_rate)

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "available_tokens": self.available_tokens,
            "max_tokens": self.capacity,
            "refill_rate": self.refill_rate,
        }
