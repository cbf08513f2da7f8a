"""Chat roster cache.

The live roster is fetched from the streaming platform at most once per
TTL. Callers that ask while a fetch is running wait for that same fetch
instead of starting another one. A fetch that fails or times out raises
``PresenceUnavailableError`` and leaves the cache stale, so the next
caller tries again.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import timedelta

import structlog

from src.application.ports.chat_roster import ChatRosterProtocol
from src.application.ports.time_authority import TimeAuthorityProtocol
from src.domain.errors.presence import PresenceUnavailableError
from src.domain.models.queue_entry import Submitter

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CachedRoster:
    """Roster snapshot with the monotonic time it expires at."""

    chatters: tuple[Submitter, ...]
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class RosterCache:
    """Caches the live chat roster with a TTL and a shared in-flight fetch."""

    def __init__(
        self,
        roster: ChatRosterProtocol,
        time_authority: TimeAuthorityProtocol,
        *,
        ttl: timedelta = timedelta(seconds=60),
        timeout: timedelta = timedelta(seconds=10),
    ) -> None:
        """Initialize roster cache.

        Args:
            roster: The platform roster to fetch from.
            time_authority: Clock used for expiry.
            ttl: How long a fetched roster is reused.
            timeout: Upper bound on one fetch.
        """
        self._roster = roster
        self._time = time_authority
        self._ttl = ttl.total_seconds()
        self._timeout = timeout.total_seconds()
        self._cached: CachedRoster | None = None
        self._fetching: asyncio.Task[tuple[Submitter, ...]] | None = None
        self._log = logger.bind(component="roster_cache")

    @property
    def is_stale(self) -> bool:
        return self._cached is None or self._cached.is_expired(self._time.monotonic())

    async def chatters(self, *, force_refresh: bool = False) -> tuple[Submitter, ...]:
        """Current roster, fetched if stale or when forced.

        Raises:
            PresenceUnavailableError: If the fetch failed or timed out.
        """
        if not force_refresh and not self.is_stale:
            assert self._cached is not None
            self._log.debug("cache_hit", chatters=len(self._cached.chatters))
            return self._cached.chatters
        if self._fetching is None:
            self._fetching = asyncio.create_task(self._fetch())
            self._fetching.add_done_callback(self._fetch_done)
        return await asyncio.shield(self._fetching)

    def invalidate(self) -> None:
        self._cached = None

    async def _fetch(self) -> tuple[Submitter, ...]:
        try:
            chatters = await asyncio.wait_for(self._roster.get_chatters(), self._timeout)
        except asyncio.TimeoutError as exc:
            self._log.warning("roster_fetch_timeout", timeout_seconds=self._timeout)
            raise PresenceUnavailableError("roster fetch timed out") from exc
        except PresenceUnavailableError:
            raise
        except Exception as exc:
            self._log.warning("roster_fetch_failed", error=str(exc))
            raise PresenceUnavailableError(f"roster fetch failed: {exc}") from exc
        snapshot = tuple(chatters)
        self._cached = CachedRoster(snapshot, self._time.monotonic() + self._ttl)
        self._log.debug("cache_set", chatters=len(snapshot), ttl_seconds=self._ttl)
        return snapshot

    def _fetch_done(self, task: asyncio.Task[tuple[Submitter, ...]]) -> None:
        if self._fetching is task:
            self._fetching = None
        # retrieve the exception so an unawaited failure is not reported twice
        if not task.cancelled():
            task.exception()
