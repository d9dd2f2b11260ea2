from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from callguard.resilience.config import RetryConfig
from callguard.resilience.errors import AdmissionRejectedError
from callguard.resilience.metrics import resilience_metrics
from callguard.utils.logger import get_logger

from .backoff import additive_jitter
from .classifiers import ErrorClassifier, PatternErrorClassifier
from .strategies import ExponentialBackoffStrategy

logger = get_logger(__name__)

T = TypeVar("T")


class RetryStrategy:
    """
    Bounded retry loop with exponential backoff and additive jitter.

    Holds configuration only; every `execute()` call keeps its own attempt
    counter, so one instance is safely shared by concurrent callers.

    Usage:
        strategy = RetryStrategy(RetryConfig(max_attempts=3))
        result = await strategy.execute(fetch_profile, user_id)
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        *,
        classifier: Optional[ErrorClassifier] = None,
        name: str = "default",
    ) -> None:
        self.config = config or RetryConfig()
        self.classifier: ErrorClassifier = classifier or PatternErrorClassifier(
            self.config.retryable_error_patterns
        )
        self.name = name
        self.backoff = ExponentialBackoffStrategy(
            initial_delay_seconds=self.config.initial_delay_seconds,
            multiplier=self.config.backoff_multiplier,
            max_delay_seconds=self.config.max_delay_seconds,
        )

    def is_retryable(self, exc: BaseException) -> bool:
        """Admission rejections are final; everything else goes to the classifier."""
        if isinstance(exc, AdmissionRejectedError):
            return False
        return self.classifier(exc)

    def compute_delay(self, attempt: int) -> float:
        """Jittered delay to wait after failed attempt `attempt` (0-indexed)."""
        return additive_jitter(self.backoff.delay(attempt), self.config.jitter_factor)

    async def execute(
        self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """
        Run `func` until it succeeds, fails with a non-retryable error, or the budget runs out.

        Raises:
            Exception: the last error from `func`, unchanged
        """
        max_attempts = self.config.max_attempts
        attempt = 1
        while True:
            try:
                return await func(*args, **kwargs)
            except Exception as exc:
                if not self.is_retryable(exc):
                    raise
                if attempt >= max_attempts:
                    if max_attempts > 1:
                        logger.error(
                            "retry_exhausted",
                            resource=self.name,
                            function=getattr(func, "__name__", "unknown"),
                            attempts=attempt,
                            error=str(exc),
                        )
                    raise

                delay = self.compute_delay(attempt - 1)
                logger.warning(
                    "retry_attempt",
                    resource=self.name,
                    function=getattr(func, "__name__", "unknown"),
                    attempt=attempt,
                    next_delay_s=round(delay, 3),
                    error=str(exc),
                )
                resilience_metrics.inc_retry(self.name)
                await asyncio.sleep(delay)
                attempt += 1
