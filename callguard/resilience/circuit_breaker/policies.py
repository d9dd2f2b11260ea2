from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque


@dataclass
class FailureWindow:
    """
    Time-window failure policy.

    If failures in the past `window_seconds` reach `threshold`, the circuit should OPEN.
    Timestamps are pruned on every recorded failure, so the deque only holds
    entries inside the window.
    """

    window_seconds: float = 120.0
    threshold: int = 5
    clock: Callable[[], float] = time.monotonic
    _failures: Deque[float] = field(default_factory=deque, init=False, repr=False)

    def record_failure(self) -> bool:
        """Record a failure now; return True when the threshold is reached."""
        now = self.clock()
        self._failures.append(now)
        self._prune(now)
        return len(self._failures) >= self.threshold

    def count(self) -> int:
        """Failures inside the window, without mutating the history."""
        cutoff = self.clock() - self.window_seconds
        return sum(1 for ts in self._failures if ts >= cutoff)

    def clear(self) -> None:
        self._failures.clear()

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._failures and self._failures[0] < cutoff:
            self._failures.popleft()
