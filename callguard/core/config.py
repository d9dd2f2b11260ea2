# callguard/core/config.py
from __future__ import annotations

from typing import List

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Matched case-insensitively against exception class names and messages
DEFAULT_RETRY_ERROR_PATTERNS = (
    "timeout",
    "connectionerror",
    "connectionreset",
    "clientconnectorerror",
    "serverdisconnected",
    "transient",
    "temporarily unavailable",
    "service unavailable",
    "too many requests",
)


class Settings(BaseSettings):
    """
    Process-wide resilience defaults, loaded from environment variables and/or .env file.

    Every resource created without an explicit `ResilienceConfig` picks its
    values up from here.
    """

    # Environment settings
    APP_NAME: str = "callguard"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Circuit breaker
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = Field(default=5, ge=1)
    CIRCUIT_BREAKER_SUCCESS_THRESHOLD: int = Field(default=2, ge=1)
    CIRCUIT_BREAKER_TIMEOUT_SECONDS: float = Field(default=60.0, gt=0)
    CIRCUIT_BREAKER_MONITORING_PERIOD_SECONDS: float = Field(default=120.0, gt=0)

    # Bulkhead
    BULKHEAD_MAX_CONCURRENT: int = Field(default=10, ge=1)
    BULKHEAD_MAX_QUEUE: int = Field(default=20, ge=0)
    BULKHEAD_QUEUE_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)

    # Rate limiter (token bucket)
    RATE_LIMIT_MAX_REQUESTS: int = Field(default=50, ge=1)
    RATE_LIMIT_WINDOW_SECONDS: float = Field(default=60.0, gt=0)
    RATE_LIMIT_BURST_SIZE: int = Field(default=60, ge=1)

    # Retry
    RETRY_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    RETRY_INITIAL_DELAY_SECONDS: float = Field(default=1.0, ge=0)
    RETRY_MAX_DELAY_SECONDS: float = Field(default=30.0, ge=0)
    RETRY_BACKOFF_MULTIPLIER: float = Field(default=2.0, ge=1.0)
    RETRY_JITTER_FACTOR: float = Field(default=0.1, ge=0, le=1)
    RETRY_ERROR_PATTERNS: List[str] = Field(
        default_factory=lambda: list(DEFAULT_RETRY_ERROR_PATTERNS),
        description="Regex patterns matched against error class names and messages",
    )

    # Connection pool
    POOL_CONNECTIONS: int = Field(default=10, ge=1)
    POOL_CONNECT_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    POOL_BODY_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    POOL_KEEP_ALIVE_TIMEOUT_SECONDS: float = Field(default=60.0, gt=0)

    @model_validator(mode="after")
    def _check_retry_delays(self) -> "Settings":
        """Backoff cap below the first delay is a misconfiguration, not something to clamp."""
        if self.RETRY_MAX_DELAY_SECONDS < self.RETRY_INITIAL_DELAY_SECONDS:
            raise ValueError(
                "RETRY_MAX_DELAY_SECONDS must be >= RETRY_INITIAL_DELAY_SECONDS"
            )
        return self

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


settings = Settings()
