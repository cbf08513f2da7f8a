"""In-memory fakes for the application ports."""

from __future__ import annotations

from src.domain.errors.presence import PresenceUnavailableError
from src.domain.models.queue_entry import Submitter
from src.domain.models.queue_state import QueueState
from src.domain.models.selection import PresenceFilter


class FakePresence:
    """Presence view backed by plain sets.

    Set ``failure`` to make every online query raise.
    """

    def __init__(self) -> None:
        self.online: set[str] = set()
        self.subscribers: set[str] = set()
        self.moderators: set[str] = set()
        self.lurkers: set[str] = set()
        self.failure: PresenceUnavailableError | None = None
        self.queries: list[tuple[PresenceFilter | None, bool]] = []

    async def online_ids(
        self,
        presence_filter: PresenceFilter | None = None,
        *,
        force_refresh: bool = False,
    ) -> frozenset[str]:
        self.queries.append((presence_filter, force_refresh))
        if self.failure is not None:
            raise self.failure
        online = self.online - self.lurkers
        if presence_filter is PresenceFilter.SUBSCRIBERS:
            online &= self.subscribers
        elif presence_filter is PresenceFilter.MODERATORS:
            online &= self.moderators
        return frozenset(online)

    def notice_chatter(
        self,
        submitter: Submitter,
        *,
        is_subscriber: bool = False,
        is_moderator: bool = False,
    ) -> None:
        self.online.add(submitter.id)
        if is_subscriber:
            self.subscribers.add(submitter.id)
        if is_moderator:
            self.moderators.add(submitter.id)

    def is_subscriber(self, submitter_id: str) -> bool:
        return submitter_id in self.subscribers

    def has_role(self, submitter_id: str, presence_filter: PresenceFilter | None) -> bool:
        if presence_filter is PresenceFilter.SUBSCRIBERS:
            return submitter_id in self.subscribers
        if presence_filter is PresenceFilter.MODERATORS:
            return submitter_id in self.moderators
        return True

    def is_lurking(self, submitter_id: str) -> bool:
        return submitter_id in self.lurkers

    def set_lurking(self, submitter_id: str) -> None:
        self.lurkers.add(submitter_id)

    def clear_lurking(self, submitter_id: str) -> bool:
        if submitter_id in self.lurkers:
            self.lurkers.discard(submitter_id)
            return True
        return False


class InMemoryQueueStateRepository:
    """Queue state repository that keeps snapshots in a list."""

    def __init__(self, stored: QueueState | None = None) -> None:
        self.stored = stored
        self.saves: list[QueueState] = []
        self.scheduled: list[QueueState] = []
        self.fail_saves = False
        self.load_calls: list[bool] = []

    async def load(self, *, persistence_enabled: bool = True) -> QueueState:
        self.load_calls.append(persistence_enabled)
        return self.stored.copy() if self.stored is not None else QueueState()

    async def load_newest(self) -> QueueState:
        return await self.load()

    async def save(self, state: QueueState) -> bool:
        if self.fail_saves:
            return False
        self.saves.append(state.copy())
        self.stored = state.copy()
        return True

    def schedule_save(self, state: QueueState) -> None:
        self.scheduled.append(state.copy())

    async def flush(self) -> None:
        return None
