"""
Ordered provider fallback across several resilient clients.

Typical use is a list of interchangeable model providers: try the primary,
and when it is rate limited, its circuit is open, or it keeps failing, move
on to the next one.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Sequence, Tuple, Type, TypeVar

from callguard.resilience.client import ResilientClient
from callguard.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class FallbackChain:
    """
    Try clients in order until one succeeds.

    `operation_for(client)` builds the async operation for a given client so
    each provider can get its own request shape. Only errors matching
    `fallback_on` move the chain along; any other error propagates at once.
    When every client fails, the last error is re-raised unchanged.
    """

    def __init__(
        self,
        clients: Sequence[ResilientClient],
        *,
        fallback_on: Tuple[Type[BaseException], ...] = (Exception,),
    ) -> None:
        if not clients:
            raise ValueError("FallbackChain needs at least one client")
        self.clients = list(clients)
        self.fallback_on = fallback_on

    async def execute(
        self, operation_for: Callable[[ResilientClient], Callable[[], Awaitable[T]]]
    ) -> T:
        last_index = len(self.clients) - 1
        for index, client in enumerate(self.clients):
            try:
                return await client.execute(operation_for(client))
            except self.fallback_on as exc:
                remaining = last_index - index
                logger.warning(
                    "fallback_provider_failed",
                    resource=client.resource,
                    error_type=type(exc).__name__,
                    error=str(exc),
                    remaining=remaining,
                )
                if not remaining:
                    logger.error(
                        "fallback_chain_exhausted",
                        resources=[c.resource for c in self.clients],
                        error_type=type(exc).__name__,
                    )
                    raise
        raise RuntimeError("FallbackChain has no clients")
