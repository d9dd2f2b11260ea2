from __future__ import annotations

from prometheus_client import Counter, Gauge

_STATE = {
    "closed": 0,
    "half_open": 0.5,
    "open": 1,
}


class _ResilienceMetrics:
    """Process-wide Prometheus collectors, labelled by resource name."""

    def __init__(self) -> None:
        self.circuit_state = Gauge(
            "circuit_state",
            "Circuit state (0=closed,0.5=half,1=open)",
            ["resource"],
        )
        self.circuit_success_total = Counter(
            "circuit_success_total",
            "Total successful calls through circuit",
            ["resource"],
        )
        self.circuit_failure_total = Counter(
            "circuit_failure_total",
            "Total failed calls counted by circuit",
            ["resource"],
        )
        self.circuit_blocked_total = Counter(
            "circuit_blocked_total",
            "Calls blocked due to OPEN circuit",
            ["resource"],
        )
        self.bulkhead_active = Gauge(
            "bulkhead_active",
            "In-flight operations under bulkhead",
            ["resource"],
        )
        self.bulkhead_queued = Gauge(
            "bulkhead_queued",
            "Callers waiting for a bulkhead slot",
            ["resource"],
        )
        self.bulkhead_rejected_total = Counter(
            "bulkhead_rejected_total",
            "Calls rejected by bulkhead",
            ["resource", "reason"],
        )
        self.rate_limit_rejected_total = Counter(
            "rate_limit_rejected_total",
            "Calls rejected for lack of rate limit tokens",
            ["resource"],
        )
        self.retry_attempts_total = Counter(
            "retry_attempts_total",
            "Retries scheduled after a retryable failure",
            ["resource"],
        )

    def set_state(self, resource: str, state) -> None:
        self.circuit_state.labels(resource=resource).set(_STATE[state.value])

    def inc_success(self, resource: str) -> None:
        self.circuit_success_total.labels(resource=resource).inc()

    def inc_failure(self, resource: str) -> None:
        self.circuit_failure_total.labels(resource=resource).inc()

    def inc_blocked(self, resource: str) -> None:
        self.circuit_blocked_total.labels(resource=resource).inc()

    def set_bulkhead(self, resource: str, active: int, queued: int) -> None:
        self.bulkhead_active.labels(resource=resource).set(active)
        self.bulkhead_queued.labels(resource=resource).set(queued)

    def inc_bulkhead_rejected(self, resource: str, reason: str) -> None:
        self.bulkhead_rejected_total.labels(resource=resource, reason=reason).inc()

    def inc_rate_limited(self, resource: str) -> None:
        self.rate_limit_rejected_total.labels(resource=resource).inc()

    def inc_retry(self, resource: str) -> None:
        self.retry_attempts_total.labels(resource=resource).inc()


resilience_metrics = _ResilienceMetrics()
