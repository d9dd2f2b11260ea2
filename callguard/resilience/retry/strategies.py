from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class ExponentialBackoffStrategy:
    """Exponential backoff with cap and multiplier (pre-jitter)."""

    initial_delay_seconds: float = 1.0
    multiplier: float = 2.0
    max_delay_seconds: float = 30.0

    def delay(self, attempt: int) -> float:
        """Delay after the failed attempt `attempt` (0-indexed)."""
        try:
            exponential = self.initial_delay_seconds * (self.multiplier**attempt)
        except OverflowError:
            return self.max_delay_seconds
        return min(exponential, self.max_delay_seconds)

    def delays(self, count: int) -> Iterator[float]:
        for attempt in range(count):
            yield self.delay(attempt)
