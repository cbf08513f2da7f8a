"""Unit tests for the merged online presence view."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from src.application.services.online_presence_service import OnlinePresenceService
from src.domain.errors.presence import PresenceUnavailableError
from src.domain.models.queue_entry import Submitter
from src.domain.models.selection import PresenceFilter
from tests.helpers import FakeTimeAuthority


def _roster(*chatters: Submitter) -> AsyncMock:
    roster = AsyncMock()
    roster.chatters = AsyncMock(return_value=tuple(chatters))
    return roster


class TestOnlineIds:
    """Tests for merging roster, recent chatters and lurkers."""

    async def test_roster_members_are_online(
        self, fake_time_authority: FakeTimeAuthority, alice: Submitter
    ) -> None:
        presence = OnlinePresenceService(_roster(alice), fake_time_authority)
        assert await presence.online_ids() == frozenset({alice.id})

    async def test_recent_chatter_is_online_within_grace(
        self, fake_time_authority: FakeTimeAuthority, alice: Submitter
    ) -> None:
        presence = OnlinePresenceService(
            _roster(), fake_time_authority, grace_period=timedelta(minutes=5)
        )
        presence.notice_chatter(alice)
        fake_time_authority.advance(minutes=4)
        assert alice.id in await presence.online_ids()
        fake_time_authority.advance(minutes=1)
        assert alice.id not in await presence.online_ids()

    async def test_lurkers_are_offline(
        self, fake_time_authority: FakeTimeAuthority, alice: Submitter
    ) -> None:
        presence = OnlinePresenceService(_roster(alice), fake_time_authority)
        presence.set_lurking(alice.id)
        assert presence.is_lurking(alice.id)
        assert alice.id not in await presence.online_ids()

        assert presence.clear_lurking(alice.id)
        assert not presence.clear_lurking(alice.id)
        assert alice.id in await presence.online_ids()

    async def test_force_refresh_is_passed_to_roster(
        self, fake_time_authority: FakeTimeAuthority
    ) -> None:
        roster = _roster()
        presence = OnlinePresenceService(roster, fake_time_authority)
        await presence.online_ids(force_refresh=True)
        roster.chatters.assert_awaited_once_with(force_refresh=True)

    async def test_roster_failure_propagates(self, fake_time_authority: FakeTimeAuthority) -> None:
        roster = AsyncMock()
        roster.chatters = AsyncMock(side_effect=PresenceUnavailableError("timeout"))
        presence = OnlinePresenceService(roster, fake_time_authority)
        with pytest.raises(PresenceUnavailableError):
            await presence.online_ids()


class TestRoleFilters:
    """Tests for subscriber and moderator filters."""

    async def test_filters_use_roles_learned_from_chat(
        self,
        fake_time_authority: FakeTimeAuthority,
        alice: Submitter,
        bob: Submitter,
        carol: Submitter,
    ) -> None:
        presence = OnlinePresenceService(_roster(alice, bob, carol), fake_time_authority)
        presence.notice_chatter(alice, is_subscriber=True)
        presence.notice_chatter(bob, is_moderator=True)

        assert await presence.online_ids(PresenceFilter.SUBSCRIBERS) == frozenset({alice.id})
        assert await presence.online_ids(PresenceFilter.MODERATORS) == frozenset({bob.id})
        assert await presence.online_ids(PresenceFilter.ALL) == frozenset(
            {alice.id, bob.id, carol.id}
        )
        assert presence.is_subscriber(alice.id)
        assert not presence.is_subscriber(carol.id)

    async def test_lurking_subscriber_is_filtered_out(
        self, fake_time_authority: FakeTimeAuthority, alice: Submitter
    ) -> None:
        presence = OnlinePresenceService(_roster(alice), fake_time_authority)
        presence.notice_chatter(alice, is_subscriber=True)
        presence.set_lurking(alice.id)
        assert await presence.online_ids(PresenceFilter.SUBSCRIBERS) == frozenset()

    def test_roles_are_known_for_offline_submitters(
        self, fake_time_authority: FakeTimeAuthority, alice: Submitter, bob: Submitter
    ) -> None:
        presence = OnlinePresenceService(_roster(), fake_time_authority)
        presence.notice_chatter(alice, is_subscriber=True)
        presence.notice_chatter(bob, is_moderator=True)

        assert presence.has_role(alice.id, PresenceFilter.SUBSCRIBERS)
        assert not presence.has_role(alice.id, PresenceFilter.MODERATORS)
        assert presence.has_role(bob.id, PresenceFilter.MODERATORS)
        assert not presence.has_role(bob.id, PresenceFilter.SUBSCRIBERS)
        assert presence.has_role(bob.id, PresenceFilter.ALL)
        assert presence.has_role(bob.id, None)
