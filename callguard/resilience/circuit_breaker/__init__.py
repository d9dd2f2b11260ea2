from .breaker import CircuitBreaker, CircuitState
from .policies import FailureWindow

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "FailureWindow",
]
