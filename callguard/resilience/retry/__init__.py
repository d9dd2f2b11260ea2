from .backoff import additive_jitter
from .classifiers import ErrorClassifier, ExceptionTypeClassifier, PatternErrorClassifier
from .decorators import retry
from .policy import RetryStrategy
from .strategies import ExponentialBackoffStrategy

__all__ = [
    "retry",
    "RetryStrategy",
    "ExponentialBackoffStrategy",
    "ErrorClassifier",
    "PatternErrorClassifier",
    "ExceptionTypeClassifier",
    "additive_jitter",
]
