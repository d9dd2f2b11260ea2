"""
Exceptions raised by the resilience stack.

Each admission gate raises its own type so callers can pick a fallback
strategy per failure mode. Errors coming from the protected operation itself
are never wrapped; they reach the caller exactly as raised.
"""

from __future__ import annotations

from typing import Optional


class ResilienceError(Exception):
    """Base exception for all errors raised by callguard itself."""

    pass


class AdmissionRejectedError(ResilienceError):
    """
    A gate refused the call before any underlying work started.

    Admission rejections are never retried and never counted as failures
    by a circuit breaker.
    """

    def __init__(self, resource: str, message: str):
        super().__init__(message)
        self.resource = resource


class CircuitOpenError(AdmissionRejectedError):
    """
    The resource's circuit is OPEN (or a half-open probe is already running).

    `retry_after` is the number of seconds until the breaker will admit a probe.
    """

    def __init__(self, resource: str, retry_after: float = 0.0):
        super().__init__(
            resource,
            f"Circuit '{resource}' is OPEN; retry after {retry_after:.2f}s",
        )
        self.retry_after = retry_after


class BulkheadFullError(AdmissionRejectedError):
    """All slots are busy and the wait queue is already at capacity."""

    def __init__(self, resource: str, max_concurrent: int, max_queue: int):
        super().__init__(
            resource,
            f"Bulkhead '{resource}' is full "
            f"({max_concurrent} active, {max_queue} queued)",
        )
        self.max_concurrent = max_concurrent
        self.max_queue = max_queue


class BulkheadQueueTimeoutError(AdmissionRejectedError):
    """The caller waited in the bulkhead queue longer than the queue timeout."""

    def __init__(self, resource: str, timeout: float):
        super().__init__(
            resource,
            f"Bulkhead '{resource}' queue wait exceeded {timeout}s",
        )
        self.timeout = timeout


class RateLimitExceededError(AdmissionRejectedError):
    """
    No tokens are left in the resource's bucket.

    `retry_after` is the number of seconds until one token is available.
    """

    def __init__(self, resource: str, retry_after: float):
        super().__init__(
            resource,
            f"Rate limit exceeded for '{resource}'; retry after {retry_after:.2f}s",
        )
        self.retry_after = retry_after


class UpstreamError(ResilienceError):
    """Base class for failures reported by the pooled HTTP transport."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class TransientUpstreamError(UpstreamError):
    """
    Temporary upstream failure that may succeed on retry.

    Used for network errors, transport timeouts, 429 and 5xx responses.
    """

    pass


class UpstreamRequestError(UpstreamError):
    """
    Upstream rejected the request (4xx other than 429).

    These errors should not be retried.
    """

    pass
