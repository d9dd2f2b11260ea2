from __future__ import annotations

import functools
from typing import Any, Awaitable, Callable, Optional, TypeVar

from callguard.resilience.config import RetryConfig

from .classifiers import ErrorClassifier
from .policy import RetryStrategy

T = TypeVar("T")


def retry(
    strategy: Optional[RetryStrategy] = None,
    *,
    config: Optional[RetryConfig] = None,
    classifier: Optional[ErrorClassifier] = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Retry decorator for async callables.

    Either pass a ready `RetryStrategy` or the `config`/`classifier` to build one:

        @retry(config=RetryConfig(max_attempts=4))
        async def fetch():
            ...
    """
    if strategy is not None and (config is not None or classifier is not None):
        raise TypeError("pass either a strategy or config/classifier, not both")

    policy = strategy or RetryStrategy(config, classifier=classifier)

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await policy.execute(func, *args, **kwargs)

        return wrapper

    return decorator
