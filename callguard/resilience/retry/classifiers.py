"""
Error classification for retry decisions.

A classifier is any callable taking an exception and returning True when the
failure is worth another attempt. Keeping it a plain injected callable lets
the matching rules be swapped through configuration and tested on their own.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, Pattern, Tuple, Type

ErrorClassifier = Callable[[BaseException], bool]


class PatternErrorClassifier:
    """
    Match exceptions by name and message.

    Each pattern is a case-insensitive regex searched against every class name
    in the exception's MRO and against `str(exc)`. Matching on names keeps the
    policy data-driven: new transient errors are added through settings, not code.
    """

    def __init__(self, patterns: Iterable[str]) -> None:
        self.patterns: Tuple[str, ...] = tuple(patterns)
        self._compiled: Tuple[Pattern[str], ...] = tuple(
            re.compile(p, re.IGNORECASE) for p in self.patterns
        )

    def __call__(self, exc: BaseException) -> bool:
        names = [cls.__name__ for cls in type(exc).__mro__]
        message = str(exc)
        for regex in self._compiled:
            if regex.search(message):
                return True
            if any(regex.search(name) for name in names):
                return True
        return False

    def __repr__(self) -> str:
        return f"PatternErrorClassifier(patterns={self.patterns!r})"


class ExceptionTypeClassifier:
    """Retry on instances of the given exception types; never on `excluded` ones."""

    def __init__(
        self,
        retryable: Iterable[Type[BaseException]] = (Exception,),
        excluded: Iterable[Type[BaseException]] = (),
    ) -> None:
        self.retryable = tuple(retryable)
        self.excluded = tuple(excluded)

    def __call__(self, exc: BaseException) -> bool:
        # Check non-retryable first (higher priority)
        if self.excluded and isinstance(exc, self.excluded):
            return False
        return isinstance(exc, self.retryable)
