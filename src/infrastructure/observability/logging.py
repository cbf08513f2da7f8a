"""Structured logging configuration with structlog.

Production output is one JSON object per line, development output is
rendered for the console. Every entry logged while a queue runtime is
running carries the channel it serves.

Log Entry Format:
    {
        "timestamp": "2026-01-01T00:00:00.000000Z",
        "level": "info",
        "event": "level_added",
        "channel": "streamer",
        ...additional context
    }

Usage:
    from src.infrastructure.observability import configure_structlog

    configure_structlog(environment="production")  # JSON output
    configure_structlog(environment="development")  # Console output
"""

import logging
import os

import structlog
from structlog.typing import Processor

# Environment variable for log level (default: INFO)
LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


def _get_log_level(level: str | None = None) -> int:
    level_name = (level or os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)).upper()
    return getattr(logging, level_name, logging.INFO)


def configure_structlog(environment: str = "production", *, level: str | None = None) -> None:
    """Configure structlog for the queue.

    Should be called once at startup, before the queue loads its state.

    Args:
        environment: 'production' for JSON output, anything else for console.
        level: Log level name, defaults to the LOG_LEVEL environment variable.
    """
    shared_processors: list[Processor] = [
        # channel and other bound context
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if environment == "production":
        final_processor: Processor = structlog.processors.JSONRenderer()
    else:
        final_processor = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [final_processor],
        wrapper_class=structlog.make_filtering_bound_logger(_get_log_level(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_channel(channel: str) -> None:
    """Attach the served channel to every following log entry."""
    structlog.contextvars.bind_contextvars(channel=channel)


def unbind_channel() -> None:
    structlog.contextvars.unbind_contextvars("channel")
