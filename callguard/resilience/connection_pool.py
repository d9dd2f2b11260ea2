"""
Pooled HTTP transport for outbound calls.

The pool is a leaf dependency of the protected operation, not part of the
resilience logic: handles are checked out and returned independently of the
breaker, bulkhead and limiter, and a call rejected by any of them never
reaches the pool.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp
from multidict import CIMultiDict, CIMultiDictProxy

from callguard.resilience.config import ConnectionPoolConfig
from callguard.resilience.errors import TransientUpstreamError, UpstreamRequestError
from callguard.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PooledResponse:
    """Fully-read HTTP response, detached from the underlying connection."""

    status: int
    headers: "CIMultiDictProxy[str]" = field(
        default_factory=lambda: CIMultiDictProxy(CIMultiDict())
    )
    body: bytes = b""

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding)


class ConnectionPool:
    """
    Keep-alive connection pool backed by a shared `aiohttp.ClientSession`.

    The session is created lazily on first use so the pool can be constructed
    outside a running event loop.

    Usage:
        async with ConnectionPool("billing-api", ConnectionPoolConfig(connections=20)) as pool:
            response = await pool.request("GET", "https://billing.internal/health")
    """

    def __init__(
        self,
        name: str,
        config: Optional[ConnectionPoolConfig] = None,
        *,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.name = name
        self.config = config or ConnectionPoolConfig()
        self._headers = dict(headers or {})
        self._session: Optional[aiohttp.ClientSession] = None
        self._lock = asyncio.Lock()
        self._in_flight = 0
        self._requests_total = 0

    async def __aenter__(self) -> "ConnectionPool":
        await self.session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._session is None or self._session.closed

    async def session(self) -> aiohttp.ClientSession:
        """Return the shared session, creating it on first use."""
        if self._session is None or self._session.closed:
            async with self._lock:
                if self._session is None or self._session.closed:
                    connector = aiohttp.TCPConnector(
                        limit=self.config.connections,
                        keepalive_timeout=self.config.keep_alive_timeout_seconds,
                    )
                    timeout = aiohttp.ClientTimeout(
                        sock_connect=self.config.connect_timeout_seconds,
                        sock_read=self.config.body_timeout_seconds,
                    )
                    self._session = aiohttp.ClientSession(
                        connector=connector, timeout=timeout, headers=self._headers
                    )
                    logger.info(
                        "connection_pool_opened",
                        pool=self.name,
                        connections=self.config.connections,
                    )
        return self._session

    async def request(self, method: str, url: str, **kwargs: Any) -> PooledResponse:
        """
        Send one request and read the whole body.

        Raises:
            TransientUpstreamError: connection or payload error, transport
                timeout, 429 or 5xx
            UpstreamRequestError: invalid URL, any other client error, or any
                other status >= 400
        """
        session = await self.session()
        self._in_flight += 1
        self._requests_total += 1
        try:
            async with session.request(method, url, **kwargs) as response:
                body = await response.read()
                status = response.status
                headers = CIMultiDictProxy(response.headers.copy())
        except asyncio.TimeoutError:
            raise TransientUpstreamError(f"Request timeout: {method} {url}") from None
        except aiohttp.InvalidURL as e:
            raise UpstreamRequestError(f"Invalid URL: {e}") from e
        except (aiohttp.ClientConnectionError, aiohttp.ClientPayloadError) as e:
            raise TransientUpstreamError(f"Network error: {e}") from e
        except aiohttp.ClientError as e:
            raise UpstreamRequestError(f"Request failed: {e}") from e
        finally:
            self._in_flight -= 1

        if status == 429 or status >= 500:
            raise TransientUpstreamError(f"Upstream returned {status}", status=status)
        if status >= 400:
            raise UpstreamRequestError(f"HTTP {status}: {method} {url}", status=status)

        return PooledResponse(status=status, headers=headers, body=body)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.info("connection_pool_closed", pool=self.name)
        self._session = None

    def stats(self) -> Dict[str, Any]:
        return {
            "connections": self.config.connections,
            "in_flight": self._in_flight,
            "requests_total": self._requests_total,
            "open": not self.closed,
        }
