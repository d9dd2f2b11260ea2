from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from callguard.resilience.config import CircuitBreakerConfig
from callguard.resilience.errors import AdmissionRejectedError, CircuitOpenError
from callguard.resilience.metrics import resilience_metrics
from callguard.utils.logger import get_logger

from .policies import FailureWindow

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Async-first circuit breaker with a sliding failure window and a single-probe HALF-OPEN state.

    - CLOSED: calls pass through; counted failures inside `monitoring_period_seconds`
      reaching `failure_threshold` -> OPEN.
    - OPEN: calls fail fast with `CircuitOpenError` until `timeout_seconds` elapses.
    - HALF_OPEN: one probe at a time; `success_threshold` consecutive successes -> CLOSED;
      any counted failure -> OPEN.

    State lives behind a `threading.RLock` that is never held across an await, so
    outcome reports for the same resource are linearizable.

    Every transition starts a new generation. `before_call()` returns the
    generation a call was admitted under; an outcome reported with an older
    generation is stale. Stale outcomes only bump the success/failure metrics
    and never move the state machine or release the half-open probe.
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Optional[Callable[[CircuitState, CircuitState], None]] = None,
    ) -> None:
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self.on_state_change = on_state_change
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failures = FailureWindow(
            window_seconds=self.config.monitoring_period_seconds,
            threshold=self.config.failure_threshold,
            clock=clock,
        )
        self._consecutive_failures = 0
        self._consecutive_successes = 0
        self._last_state_change = clock()
        self._probe_in_flight = False
        self._generation = 0
        self._lock = threading.RLock()

    @property
    def state(self) -> CircuitState:
        """Stored state; reading never transitions the breaker."""
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def consecutive_successes(self) -> int:
        return self._consecutive_successes

    def _transition(self, new_state: CircuitState) -> None:
        """Switch state (called under lock)."""
        if self._state == new_state:
            return
        prev = self._state
        self._state = new_state
        self._generation += 1
        self._last_state_change = self._clock()
        self._probe_in_flight = False

        if new_state == CircuitState.CLOSED:
            self._failures.clear()
            self._consecutive_successes = 0
        elif new_state == CircuitState.HALF_OPEN:
            self._consecutive_successes = 0

        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(
            "circuit_state_change",
            circuit=self.name,
            from_state=prev.value,
            to_state=new_state.value,
        )
        resilience_metrics.set_state(self.name, new_state)

        if self.on_state_change:
            try:
                self.on_state_change(prev, new_state)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "circuit_state_callback_error",
                    circuit=self.name,
                    error=str(exc),
                )

    def _retry_after(self) -> float:
        elapsed = self._clock() - self._last_state_change
        return max(0.0, self.config.timeout_seconds - elapsed)

    def _is_counted(self, exc: BaseException) -> bool:
        if isinstance(exc, AdmissionRejectedError):
            return False
        return not isinstance(exc, tuple(self.config.ignored_exceptions))

    def _is_stale(self, generation: Optional[int]) -> bool:
        return generation is not None and generation != self._generation

    def before_call(self) -> int:
        """
        Admit or reject a call.

        Returns:
            The generation the call was admitted under; pass it back when
            reporting the outcome.

        Raises:
            CircuitOpenError: circuit is OPEN and not yet eligible for a probe,
                or a half-open probe is already running
        """
        with self._lock:
            if self._state == CircuitState.OPEN:
                if self._retry_after() > 0:
                    resilience_metrics.inc_blocked(self.name)
                    raise CircuitOpenError(self.name, self._retry_after())
                self._transition(CircuitState.HALF_OPEN)

            if self._state == CircuitState.HALF_OPEN:
                if self._probe_in_flight:
                    resilience_metrics.inc_blocked(self.name)
                    raise CircuitOpenError(self.name, 0.0)
                self._probe_in_flight = True
            return self._generation

    def record_success(self, generation: Optional[int] = None) -> None:
        with self._lock:
            resilience_metrics.inc_success(self.name)
            if self._is_stale(generation):
                logger.debug(
                    "circuit_stale_outcome", circuit=self.name, outcome="success"
                )
                return

            self._consecutive_failures = 0
            self._consecutive_successes += 1

            if self._state == CircuitState.HALF_OPEN:
                self._probe_in_flight = False
                if self._consecutive_successes >= self.config.success_threshold:
                    self._transition(CircuitState.CLOSED)

    def record_failure(
        self, exc: BaseException, generation: Optional[int] = None
    ) -> None:
        """Record an operation failure; uncounted errors only release a pending probe."""
        with self._lock:
            stale = self._is_stale(generation)
            if not self._is_counted(exc):
                if not stale:
                    self._probe_in_flight = False
                logger.debug(
                    "circuit_failure_not_counted",
                    circuit=self.name,
                    error_type=type(exc).__name__,
                )
                return

            resilience_metrics.inc_failure(self.name)
            if stale:
                logger.debug(
                    "circuit_stale_outcome", circuit=self.name, outcome="failure"
                )
                return

            self._consecutive_successes = 0
            self._consecutive_failures += 1

            if self._state == CircuitState.HALF_OPEN:
                # Any failure in HALF_OPEN flips back to OPEN immediately
                self._transition(CircuitState.OPEN)
            elif self._state == CircuitState.CLOSED:
                if self._failures.record_failure():
                    self._transition(CircuitState.OPEN)

    def _release_probe(self, generation: int) -> None:
        with self._lock:
            if not self._is_stale(generation):
                self._probe_in_flight = False

    async def call(
        self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """Invoke an async function through the circuit breaker."""
        generation = self.before_call()
        try:
            result = await func(*args, **kwargs)
        except Exception as exc:
            self.record_failure(exc, generation)
            raise
        except BaseException:
            # Cancellation is not an outcome; free the probe slot and propagate
            self._release_probe(generation)
            raise

        self.record_success(generation)
        return result

    def decorate(self, func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        """Decorator for async call-sites."""

        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await self.call(func, *args, **kwargs)

        wrapper.__name__ = getattr(func, "__name__", "circuit_wrapper")
        wrapper.__doc__ = func.__doc__
        return wrapper

    def reset(self) -> None:
        """Force the circuit CLOSED and clear its failure history."""
        with self._lock:
            self._transition(CircuitState.CLOSED)
            self._generation += 1
            self._failures.clear()
            self._consecutive_failures = 0
            self._consecutive_successes = 0
            self._probe_in_flight = False
        logger.info("circuit_manual_reset", circuit=self.name)

    def get_metrics(self) -> Dict[str, Any]:
        """Read-only snapshot; never mutates state."""
        return {
            "state": self._state.value,
            "failures": self._failures.count(),
            "consecutive_failures": self._consecutive_failures,
            "consecutive_successes": self._consecutive_successes,
            "last_state_change": self._last_state_change,
        }
