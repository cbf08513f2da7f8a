"""Observability infrastructure for structured logging.

Usage:
    from src.infrastructure.observability import configure_structlog

    # At startup
    configure_structlog(environment="production")
"""

from src.infrastructure.observability.logging import (
    bind_channel,
    configure_structlog,
    unbind_channel,
)

__all__: list[str] = [
    "bind_channel",
    "configure_structlog",
    "unbind_channel",
]
