"""Domain errors for the level queue.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from QueueEngineError.
"""

from src.domain.errors.persistence import (
    IncompatibleVersionError,
    OutdatedDocumentError,
    PersistenceCorruptionError,
    PersistenceError,
    UpgradeAbortedError,
)
from src.domain.errors.presence import PresenceUnavailableError

__all__: list[str] = [
    "IncompatibleVersionError",
    "OutdatedDocumentError",
    "PersistenceCorruptionError",
    "PersistenceError",
    "PresenceUnavailableError",
    "UpgradeAbortedError",
]
