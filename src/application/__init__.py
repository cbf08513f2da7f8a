"""
Application layer - Use cases and orchestration for the level queue.

This layer contains:
- Application services (queue, selector, presence, wait time ledger)
- Port definitions (abstract interfaces for infrastructure)

IMPORT RULES:
- CAN import from: domain, config
- CANNOT import from: infrastructure, bootstrap
"""

__all__: list[str] = []
