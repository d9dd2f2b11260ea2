from __future__ import annotations

import asyncio
import itertools
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, TypeVar

from callguard.resilience.config import BulkheadConfig
from callguard.resilience.errors import BulkheadFullError, BulkheadQueueTimeoutError
from callguard.resilience.metrics import resilience_metrics
from callguard.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class _Waiter:
    future: "asyncio.Future[None]"
    enqueued_at: float


class Bulkhead:
    """
    Concurrency isolator with a bounded FIFO wait queue.

    Limits concurrent access per resource to avoid cascading failures. Callers
    beyond `max_concurrent` wait in strict arrival order for up to
    `queue_timeout_seconds`; callers beyond `max_queue` are rejected at once.

    Waiters live in an ordered mapping keyed by ticket, so a timed-out waiter is
    removed from the middle of the queue in O(1). A released slot is handed
    directly to the head waiter; `active_count` never dips in between, which
    keeps late arrivals from jumping the queue.

    Bound to the event loop that runs it; all bookkeeping happens between awaits.
    """

    def __init__(self, name: str, config: Optional[BulkheadConfig] = None) -> None:
        self.name = name
        self.config = config or BulkheadConfig()
        self._active = 0
        self._queue: "OrderedDict[int, _Waiter]" = OrderedDict()
        self._tickets = itertools.count()

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def queued_count(self) -> int:
        return len(self._queue)

    @property
    def available_slots(self) -> int:
        return max(0, self.config.max_concurrent - self._active)

    def _publish(self) -> None:
        resilience_metrics.set_bulkhead(self.name, self._active, len(self._queue))

    async def _enter(self) -> None:
        if self._active < self.config.max_concurrent:
            self._active += 1
            self._publish()
            return

        if len(self._queue) >= self.config.max_queue:
            resilience_metrics.inc_bulkhead_rejected(self.name, "full")
            logger.warning(
                "bulkhead_full",
                bulkhead=self.name,
                active=self._active,
                queued=len(self._queue),
            )
            raise BulkheadFullError(
                self.name, self.config.max_concurrent, self.config.max_queue
            )

        ticket = next(self._tickets)
        future: "asyncio.Future[None]" = asyncio.get_running_loop().create_future()
        self._queue[ticket] = _Waiter(future=future, enqueued_at=time.monotonic())
        self._publish()

        timeout = self.config.queue_timeout_seconds
        try:
            await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            self._queue.pop(ticket, None)
            if future.done() and not future.cancelled():
                # Slot was handed over just as the timer fired; keep it
                self._publish()
                return
            self._publish()
            resilience_metrics.inc_bulkhead_rejected(self.name, "queue_timeout")
            logger.error(
                "bulkhead_queue_timeout", bulkhead=self.name, timeout=timeout
            )
            raise BulkheadQueueTimeoutError(self.name, timeout) from None
        except asyncio.CancelledError:
            self._queue.pop(ticket, None)
            if future.done() and not future.cancelled():
                # Pass the slot we were handed to the next waiter
                self._release()
            else:
                self._publish()
            raise

    def _release(self) -> None:
        while self._queue:
            _, waiter = self._queue.popitem(last=False)
            if waiter.future.done():
                continue
            # Hand our slot to the head waiter; active count is unchanged
            waiter.future.set_result(None)
            self._publish()
            return
        self._active -= 1
        self._publish()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[None]:
        """
        Hold one slot for the duration of the block.

        Raises:
            BulkheadFullError: all slots busy and the queue is at capacity
            BulkheadQueueTimeoutError: no slot freed within `queue_timeout_seconds`
        """
        await self._enter()
        try:
            yield
        finally:
            self._release()

    async def run(
        self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        async with self.acquire():
            return await func(*args, **kwargs)

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "active_count": self._active,
            "queued_count": len(self._queue),
            "available_slots": self.available_slots,
        }
