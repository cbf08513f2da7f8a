"""Online presence service.

Merges three sources into one view of who is online:

1. The live chat roster (through a cached roster source)
2. Anyone who spoke in chat within the grace period, even if the roster
   does not list them (rosters lag behind by minutes)
3. Lurkers, who are always offline until they stop lurking

Subscriber and moderator status is learned from chat messages.
"""

from __future__ import annotations

from datetime import timedelta

import structlog

from src.application.ports.chat_roster import RosterSourceProtocol
from src.application.ports.time_authority import TimeAuthorityProtocol
from src.domain.models.queue_entry import Submitter
from src.domain.models.selection import PresenceFilter

logger = structlog.get_logger(__name__)

DEFAULT_GRACE_PERIOD = timedelta(minutes=5)


class OnlinePresenceService:
    """Merged online presence view, keyed by user id."""

    def __init__(
        self,
        roster: RosterSourceProtocol,
        time_authority: TimeAuthorityProtocol,
        *,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
    ) -> None:
        """Initialize the presence service.

        Args:
            roster: Source of the live roster.
            time_authority: Clock for the grace window.
            grace_period: How long a chatter stays online after speaking.
        """
        self._roster = roster
        self._time = time_authority
        self._grace = grace_period.total_seconds()
        self._recent: dict[str, float] = {}
        self._subscribers: set[str] = set()
        self._moderators: set[str] = set()
        self._lurkers: set[str] = set()

    async def online_ids(
        self,
        presence_filter: PresenceFilter | None = None,
        *,
        force_refresh: bool = False,
    ) -> frozenset[str]:
        chatters = await self._roster.chatters(force_refresh=force_refresh)
        now = self._time.monotonic()
        online = {chatter.id for chatter in chatters}
        online.update(
            user_id for user_id, seen in self._recent.items() if now - seen < self._grace
        )
        online -= self._lurkers
        if presence_filter is PresenceFilter.SUBSCRIBERS:
            online &= self._subscribers
        elif presence_filter is PresenceFilter.MODERATORS:
            online &= self._moderators
        return frozenset(online)

    def notice_chatter(
        self,
        submitter: Submitter,
        *,
        is_subscriber: bool = False,
        is_moderator: bool = False,
    ) -> None:
        self._recent[submitter.id] = self._time.monotonic()
        if is_subscriber:
            self._subscribers.add(submitter.id)
        if is_moderator:
            self._moderators.add(submitter.id)

    def is_subscriber(self, submitter_id: str) -> bool:
        return submitter_id in self._subscribers

    def has_role(self, submitter_id: str, presence_filter: PresenceFilter | None) -> bool:
        """Check the role a filter asks for; every submitter passes ``ALL``."""
        if presence_filter is PresenceFilter.SUBSCRIBERS:
            return submitter_id in self._subscribers
        if presence_filter is PresenceFilter.MODERATORS:
            return submitter_id in self._moderators
        return True

    def is_lurking(self, submitter_id: str) -> bool:
        return submitter_id in self._lurkers

    def set_lurking(self, submitter_id: str) -> None:
        self._lurkers.add(submitter_id)
        logger.debug("lurk_started", submitter_id=submitter_id)

    def clear_lurking(self, submitter_id: str) -> bool:
        if submitter_id in self._lurkers:
            self._lurkers.discard(submitter_id)
            logger.debug("lurk_ended", submitter_id=submitter_id)
            return True
        return False
