"""Composition root for wiring dependencies.

This package centralizes infrastructure-aware wiring so application
services can depend on ports without importing infrastructure directly.
"""

from src.bootstrap.logging import configure_structlog
from src.bootstrap.queue_runtime import QueueNotLoadedError, QueueRuntime

__all__: list[str] = ["QueueNotLoadedError", "QueueRuntime", "configure_structlog"]
