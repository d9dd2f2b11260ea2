"""
Structured logging configuration using structlog.

Every callguard component logs through `get_logger(__name__)` with snake_case
event names and keyword context. Call `configure_logging()` once at process
start-up; it supports both development (human-readable) and production (JSON)
formats.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import Processor

from callguard.core.config import settings


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure structured logging for the host process.

    This function sets up:
    - Development: Human-readable logs with colors
    - Production: JSON structured logs for machine processing
    """
    is_development = settings.APP_ENV.lower() in ("development", "dev", "local")
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]

    if is_development:
        processors.extend(
            [
                structlog.dev.set_exc_info,
                structlog.dev.ConsoleRenderer(colors=True),
            ]
        )
    else:
        processors.extend(
            [
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ]
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)
