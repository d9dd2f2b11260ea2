from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from callguard.resilience.registry import ResilienceRegistry, get_default_registry
from callguard.utils.logger import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    """Health status levels"""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.UNHEALTHY: 2,
}


class ResilienceHealthChecker:
    """
    Collects basic health indicators for every registered resource.

    - OPEN circuit -> unhealthy
    - HALF_OPEN circuit, saturated bulkhead, or an empty token bucket -> degraded
    """

    def __init__(self, registry: Optional[ResilienceRegistry] = None) -> None:
        self._registry = registry or get_default_registry()

    @staticmethod
    def evaluate(metrics: Dict[str, Any]) -> HealthStatus:
        breaker = metrics["circuit_breaker"]
        if breaker["state"] == "open":
            return HealthStatus.UNHEALTHY
        if breaker["state"] == "half_open":
            return HealthStatus.DEGRADED
        if metrics["bulkhead"]["available_slots"] == 0:
            return HealthStatus.DEGRADED
        if metrics["rate_limiter"]["available_tokens"] < 1:
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    def snapshot(self) -> Dict[str, Any]:
        """
        Build a point-in-time snapshot of resilience health.

        The overall status is the worst status of any resource.
        """
        resources: Dict[str, Any] = {}
        overall = HealthStatus.HEALTHY
        for name, metrics in self._registry.snapshot().items():
            status = self.evaluate(metrics)
            resources[name] = {"status": status.value, **metrics}
            if _SEVERITY[status] > _SEVERITY[overall]:
                overall = status

        if overall != HealthStatus.HEALTHY:
            logger.warning(
                "resilience_health_degraded",
                status=overall.value,
                resources=[
                    n for n, r in resources.items() if r["status"] != "healthy"
                ],
            )
        return {"status": overall.value, "resources": resources}
