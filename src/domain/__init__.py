"""
Domain layer - Pure queue logic.

This layer contains:
- Domain models (queue entries, queue state, wait records)
- Domain services (level code codec)
- Domain exceptions

CRITICAL: This layer must NOT import from application, infrastructure, or config.
Only stdlib and typing imports are allowed.
"""

from src.domain.exceptions import QueueEngineError

__all__: list[str] = ["QueueEngineError"]
