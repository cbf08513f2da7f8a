"""ChatRoster stub for local runs and tests.

This module provides an in-memory implementation of ChatRosterProtocol.
It records fetches for test assertions and can be told to fail or hang
to exercise the presence-unavailable paths.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from src.domain.models.queue_entry import Submitter


class ChatRosterStub:
    """In-memory chat roster.

    Usage:
        stub = ChatRosterStub()
        stub.add_user(Submitter("1", "alice", "Alice"), in_chat=True)

        # Failure injection
        stub.set_failure(ConnectionError("platform down"))
        stub.set_delay(30.0)
    """

    def __init__(self) -> None:
        self._users: dict[str, Submitter] = {}
        self._in_chat: set[str] = set()
        self._failure: Exception | None = None
        self._delay: float = 0.0
        self.fetch_count = 0
        self.lookups: list[list[str]] = []

    def add_user(self, user: Submitter, *, in_chat: bool = False) -> None:
        """Register a user, optionally putting them in the chat."""
        self._users[user.login] = user
        if in_chat:
            self._in_chat.add(user.login)

    def join(self, login: str) -> None:
        self._in_chat.add(login)

    def leave(self, login: str) -> None:
        self._in_chat.discard(login)

    def set_failure(self, failure: Exception | None) -> None:
        self._failure = failure

    def set_delay(self, seconds: float) -> None:
        self._delay = seconds

    async def get_chatters(self) -> list[Submitter]:
        self.fetch_count += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._failure is not None:
            raise self._failure
        return [self._users[login] for login in sorted(self._in_chat) if login in self._users]

    async def get_users_by_login(self, logins: Sequence[str]) -> dict[str, Submitter]:
        self.lookups.append(list(logins))
        if self._failure is not None:
            raise self._failure
        return {login: self._users[login] for login in logins if login in self._users}
