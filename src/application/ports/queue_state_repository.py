"""Queue state repository protocol.

Defines how the queue service loads and stores its state. Saves are
serialized by the implementation; ``schedule_save`` returns at once and
the write happens in the background.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from src.domain.models.queue_state import QueueState


class QueueStateRepositoryProtocol(Protocol):
    """Protocol for durable queue state storage."""

    @abstractmethod
    async def load(self, *, persistence_enabled: bool = True) -> QueueState:
        """Load the stored state, upgrading old formats.

        An upgraded state is saved and verified before any upgrade hook
        runs. With persistence disabled the upgrade is kept in memory
        and its hooks run after the next successful save.

        Raises:
            PersistenceCorruptionError: If a stored document is malformed.
            IncompatibleVersionError: If the stored version is unsupported.
            UpgradeAbortedError: If the upgraded state could not be verified.
        """
        ...

    @abstractmethod
    async def load_newest(self) -> QueueState:
        """Load the stored state without upgrading.

        Raises:
            OutdatedDocumentError: If the stored state is not the newest version.
        """
        ...

    @abstractmethod
    async def save(self, state: QueueState) -> bool:
        """Write a snapshot of the state and wait for it.

        Returns:
            True if the write succeeded.
        """
        ...

    @abstractmethod
    def schedule_save(self, state: QueueState) -> None:
        """Queue a snapshot of the state for writing."""
        ...

    @abstractmethod
    async def flush(self) -> None:
        """Wait until every scheduled write has finished."""
        ...


class CustomCodeRepositoryProtocol(Protocol):
    """Protocol for the custom code extension document."""

    @abstractmethod
    async def load(self) -> dict[str, dict[str, str | None]]:
        """Load custom codes as name to ``{"code", "type"}``."""
        ...

    @abstractmethod
    async def save(self, codes: dict[str, dict[str, str | None]]) -> bool: ...
