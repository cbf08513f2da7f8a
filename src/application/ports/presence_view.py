"""Online presence view protocol.

The merged view of who is online: the live roster, plus anyone who spoke
within the grace period, minus anyone who asked to lurk. Selection and
position queries always go through this view, never the raw roster.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from src.domain.models.queue_entry import Submitter
    from src.domain.models.selection import PresenceFilter


class PresenceViewProtocol(Protocol):
    """Protocol for the online presence view."""

    @abstractmethod
    async def online_ids(
        self,
        presence_filter: PresenceFilter | None = None,
        *,
        force_refresh: bool = False,
    ) -> frozenset[str]:
        """Ids of everyone currently online, narrowed by role.

        Raises:
            PresenceUnavailableError: If the roster could not be fetched.
        """
        ...

    @abstractmethod
    def notice_chatter(
        self,
        submitter: Submitter,
        *,
        is_subscriber: bool = False,
        is_moderator: bool = False,
    ) -> None:
        """Record chat activity, refreshing the grace window."""
        ...

    @abstractmethod
    def is_subscriber(self, submitter_id: str) -> bool: ...

    @abstractmethod
    def has_role(self, submitter_id: str, presence_filter: PresenceFilter | None) -> bool:
        """Check the subscriber or moderator status a filter asks for.

        Known for offline submitters too, once they were seen in chat.
        """
        ...

    @abstractmethod
    def is_lurking(self, submitter_id: str) -> bool: ...

    @abstractmethod
    def set_lurking(self, submitter_id: str) -> None: ...

    @abstractmethod
    def clear_lurking(self, submitter_id: str) -> bool:
        """Stop lurking; returns True if the submitter was lurking."""
        ...
