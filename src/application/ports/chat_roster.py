"""Chat roster protocol.

The roster is the streaming platform's view of who is in the chat. It is
an external collaborator: the queue only reads it, through the presence
service, and resolves login names through it when upgrading old save
files that did not store user ids.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.domain.models.queue_entry import Submitter


class ChatRosterProtocol(Protocol):
    """Protocol for the live chat roster and user directory."""

    @abstractmethod
    async def get_chatters(self) -> list[Submitter]:
        """Fetch everyone currently in the chat.

        Raises:
            Exception: Any transport error; callers treat it as presence
                being unavailable.
        """
        ...

    @abstractmethod
    async def get_users_by_login(self, logins: Sequence[str]) -> dict[str, Submitter]:
        """Resolve login names to users.

        Args:
            logins: Lowercase login names.

        Returns:
            Mapping of login to user for every login that could be
            resolved; unknown logins are missing from the result.
        """
        ...


class RosterSourceProtocol(Protocol):
    """Protocol for a (possibly cached) view of the live roster."""

    @abstractmethod
    async def chatters(self, *, force_refresh: bool = False) -> Sequence[Submitter]:
        """Everyone currently in the chat.

        Raises:
            PresenceUnavailableError: If the roster could not be fetched.
        """
        ...
