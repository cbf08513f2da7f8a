"""Unit tests for the chat roster cache."""

import asyncio
from datetime import timedelta

import pytest

from src.domain.errors.presence import PresenceUnavailableError
from src.domain.models.queue_entry import Submitter
from src.infrastructure.cache.roster_cache import RosterCache
from src.infrastructure.stubs.chat_roster_stub import ChatRosterStub
from tests.helpers import FakeTimeAuthority


@pytest.fixture
def roster(alice: Submitter, bob: Submitter) -> ChatRosterStub:
    stub = ChatRosterStub()
    stub.add_user(alice, in_chat=True)
    stub.add_user(bob)
    return stub


class TestRosterCacheTtl:
    """Tests for TTL based reuse."""

    async def test_roster_is_reused_within_ttl(
        self, roster: ChatRosterStub, fake_time_authority: FakeTimeAuthority, alice: Submitter
    ) -> None:
        cache = RosterCache(roster, fake_time_authority, ttl=timedelta(seconds=60))
        assert await cache.chatters() == (alice,)
        fake_time_authority.advance(seconds=59)
        await cache.chatters()
        assert roster.fetch_count == 1

    async def test_roster_is_refetched_after_ttl(
        self,
        roster: ChatRosterStub,
        fake_time_authority: FakeTimeAuthority,
        alice: Submitter,
        bob: Submitter,
    ) -> None:
        cache = RosterCache(roster, fake_time_authority, ttl=timedelta(seconds=60))
        await cache.chatters()
        roster.join(bob.login)
        fake_time_authority.advance(seconds=60)
        assert cache.is_stale
        assert await cache.chatters() == (alice, bob)
        assert roster.fetch_count == 2

    async def test_force_refresh_bypasses_cache(
        self, roster: ChatRosterStub, fake_time_authority: FakeTimeAuthority
    ) -> None:
        cache = RosterCache(roster, fake_time_authority)
        await cache.chatters()
        await cache.chatters(force_refresh=True)
        assert roster.fetch_count == 2

    async def test_invalidate(
        self, roster: ChatRosterStub, fake_time_authority: FakeTimeAuthority
    ) -> None:
        cache = RosterCache(roster, fake_time_authority)
        await cache.chatters()
        cache.invalidate()
        assert cache.is_stale


class TestRosterCacheConcurrency:
    async def test_concurrent_callers_share_one_fetch(
        self, roster: ChatRosterStub, fake_time_authority: FakeTimeAuthority, alice: Submitter
    ) -> None:
        roster.set_delay(0.01)
        cache = RosterCache(roster, fake_time_authority)
        results = await asyncio.gather(*(cache.chatters() for _ in range(5)))
        assert all(result == (alice,) for result in results)
        assert roster.fetch_count == 1


class TestRosterCacheFailures:
    """Tests for the presence unavailable paths."""

    async def test_transport_failure(
        self, roster: ChatRosterStub, fake_time_authority: FakeTimeAuthority
    ) -> None:
        roster.set_failure(ConnectionError("platform down"))
        cache = RosterCache(roster, fake_time_authority)
        with pytest.raises(PresenceUnavailableError, match="platform down"):
            await cache.chatters()
        assert cache.is_stale

    async def test_timeout(
        self, roster: ChatRosterStub, fake_time_authority: FakeTimeAuthority
    ) -> None:
        roster.set_delay(1.0)
        cache = RosterCache(roster, fake_time_authority, timeout=timedelta(milliseconds=10))
        with pytest.raises(PresenceUnavailableError) as exc_info:
            await cache.chatters()
        assert exc_info.value.reason == "roster fetch timed out"

    async def test_next_call_retries_after_failure(
        self, roster: ChatRosterStub, fake_time_authority: FakeTimeAuthority, alice: Submitter
    ) -> None:
        roster.set_failure(ConnectionError("platform down"))
        cache = RosterCache(roster, fake_time_authority)
        with pytest.raises(PresenceUnavailableError):
            await cache.chatters()
        roster.set_failure(None)
        assert await cache.chatters() == (alice,)
