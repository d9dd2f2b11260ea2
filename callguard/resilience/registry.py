"""
Per-resource registry of resilient clients.

The resource name is the sharding key: each name gets its own client (and so
its own breaker, bulkhead and limiter). The registry lock only guards the
name -> client map; calls through different clients never contend.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

from callguard.resilience.client import ResilientClient
from callguard.resilience.config import ResilienceConfig
from callguard.utils.logger import get_logger

logger = get_logger(__name__)


class ResilienceRegistry:
    """Get-or-create store of `ResilientClient` instances keyed by resource name."""

    def __init__(self, default_config: Optional[ResilienceConfig] = None) -> None:
        self._default_config = default_config
        self._clients: Dict[str, ResilientClient] = {}
        self._lock = threading.Lock()

    def get(
        self, resource: str, config: Optional[ResilienceConfig] = None
    ) -> ResilientClient:
        """
        Get or create the client for `resource`.

        Args:
            resource: Unique name of the protected dependency
            config: Configuration (only used on first creation)
        """
        with self._lock:
            client = self._clients.get(resource)
            if client is None:
                client = ResilientClient(
                    resource,
                    config or self._default_config or ResilienceConfig.from_settings(),
                )
                self._clients[resource] = client
                logger.debug("resilient_client_created", resource=resource)
            return client

    def register(self, client: ResilientClient) -> None:
        """Add a pre-built client; replacing an existing resource is an error."""
        with self._lock:
            if client.resource in self._clients:
                raise ValueError(f"Resource '{client.resource}' is already registered")
            self._clients[client.resource] = client

    def resources(self) -> List[str]:
        with self._lock:
            return list(self._clients)

    def __contains__(self, resource: str) -> bool:
        return resource in self._clients

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Metrics of every registered client, keyed by resource."""
        with self._lock:
            clients = list(self._clients.values())
        return {client.resource: client.get_metrics() for client in clients}

    def reset(self, resource: Optional[str] = None) -> None:
        """Reset one resource's breaker, or all of them when `resource` is None."""
        with self._lock:
            if resource is None:
                targets = list(self._clients.values())
            elif resource in self._clients:
                targets = [self._clients[resource]]
            else:
                raise KeyError(f"Resource '{resource}' is not registered")
        for client in targets:
            client.reset()

    async def close(self) -> None:
        with self._lock:
            clients = list(self._clients.values())
        for client in clients:
            await client.close()


_default_registry = ResilienceRegistry()


def get_resilient_client(
    resource: str, config: Optional[ResilienceConfig] = None
) -> ResilientClient:
    """
    Get or create a named client in the process-wide registry.

    Args:
        resource: Unique name for the protected resource
        config: Configuration (only used on first creation)
    """
    return _default_registry.get(resource, config)


def get_default_registry() -> ResilienceRegistry:
    return _default_registry
