"""
Infrastructure layer - External adapters for the level queue.

This layer contains:
- JSON file persistence with versioned upgrades
- Roster cache
- In-memory stubs for the chat roster
- Structured logging configuration

IMPORT RULES:
- CAN import from: domain, application
- Implements ports defined in application layer
"""

__all__: list[str] = []
