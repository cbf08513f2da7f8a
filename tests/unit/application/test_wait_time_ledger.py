"""Unit tests for the wait time ledger and its ticker."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from src.application.services.wait_time_ledger import WaitTicker, WaitTimeLedger
from src.domain.errors.presence import PresenceUnavailableError
from src.domain.models.queue_entry import QueueEntry, Submitter
from src.domain.models.queue_state import QueueState
from src.domain.models.wait_record import WaitRecord
from tests.helpers import FakePresence, FakeTimeAuthority


def _state(clock: FakeTimeAuthority, *submitters: Submitter) -> QueueState:
    return QueueState(
        levels=[
            QueueEntry(code="D36-010-5YF", submitter=s, submitted_at=clock.utcnow())
            for s in submitters
        ],
        waiting={s.id: WaitRecord.create(clock.utcnow()) for s in submitters},
    )


class TestWaitTimeLedgerTick:
    """Tests for one ledger tick."""

    async def test_online_submitters_earn_a_minute(
        self,
        fake_presence: FakePresence,
        fake_time_authority: FakeTimeAuthority,
        alice: Submitter,
        bob: Submitter,
    ) -> None:
        state = _state(fake_time_authority, alice, bob)
        fake_presence.online = {alice.id}
        ledger = WaitTimeLedger(fake_presence, fake_time_authority)
        fake_time_authority.advance(minutes=1)

        assert await ledger.tick(state)

        assert state.waiting[alice.id].weight() == 2
        assert state.waiting[alice.id].last_online_time == fake_time_authority.utcnow()
        assert state.waiting[bob.id].weight() == 1

    async def test_ten_ticks_reach_weight_eleven(
        self,
        fake_presence: FakePresence,
        fake_time_authority: FakeTimeAuthority,
        alice: Submitter,
    ) -> None:
        state = _state(fake_time_authority, alice)
        fake_presence.online = {alice.id}
        ledger = WaitTimeLedger(fake_presence, fake_time_authority)
        for _ in range(10):
            await ledger.tick(state)
        assert state.waiting[alice.id].weight() == 11

    async def test_missing_record_is_created(
        self,
        fake_presence: FakePresence,
        fake_time_authority: FakeTimeAuthority,
        alice: Submitter,
    ) -> None:
        state = _state(fake_time_authority, alice)
        state.waiting.clear()
        fake_presence.online = {alice.id}
        await WaitTimeLedger(fake_presence, fake_time_authority).tick(state)
        assert state.waiting[alice.id] == WaitRecord.create(fake_time_authority.utcnow())

    async def test_unlimited_submitter_is_credited_once(
        self,
        fake_presence: FakePresence,
        fake_time_authority: FakeTimeAuthority,
        streamer: Submitter,
    ) -> None:
        state = _state(fake_time_authority, streamer, streamer)
        fake_presence.online = {streamer.id}
        await WaitTimeLedger(fake_presence, fake_time_authority).tick(state)
        assert state.waiting[streamer.id].weight() == 2

    async def test_subscriber_multiplier(
        self,
        fake_presence: FakePresence,
        fake_time_authority: FakeTimeAuthority,
        alice: Submitter,
        bob: Submitter,
    ) -> None:
        state = _state(fake_time_authority, alice, bob)
        fake_presence.online = {alice.id, bob.id}
        fake_presence.subscribers = {alice.id}
        ledger = WaitTimeLedger(fake_presence, fake_time_authority, subscriber_multiplier=1.5)

        await ledger.tick(state)

        assert ledger.multiplier(alice.id) == 1.5
        assert ledger.multiplier(bob.id) == 1.0
        assert (state.waiting[alice.id].weight_min, state.waiting[alice.id].weight_msec) == (2, 30_000)
        assert state.waiting[bob.id].weight_min == 2

    async def test_presence_unavailable_changes_nothing(
        self,
        fake_presence: FakePresence,
        fake_time_authority: FakeTimeAuthority,
        alice: Submitter,
    ) -> None:
        state = _state(fake_time_authority, alice)
        before = dict(state.waiting)
        fake_presence.failure = PresenceUnavailableError("timeout")

        assert not await WaitTimeLedger(fake_presence, fake_time_authority).tick(state)
        assert state.waiting == before

    async def test_tick_swaps_in_a_new_mapping(
        self,
        fake_presence: FakePresence,
        fake_time_authority: FakeTimeAuthority,
        alice: Submitter,
    ) -> None:
        state = _state(fake_time_authority, alice)
        previous = state.waiting
        fake_presence.online = {alice.id}
        await WaitTimeLedger(fake_presence, fake_time_authority).tick(state)
        assert state.waiting is not previous
        assert previous[alice.id].weight() == 1


class TestWaitTicker:
    """Tests for the background tick loop."""

    async def test_start_and_stop(self) -> None:
        tick = AsyncMock(return_value=True)
        ticker = WaitTicker(tick, timedelta(milliseconds=10))

        await ticker.start()
        assert ticker.is_running
        await asyncio.sleep(0.05)
        await ticker.stop()

        assert not ticker.is_running
        assert tick.await_count >= 1

    async def test_start_is_idempotent(self) -> None:
        ticker = WaitTicker(AsyncMock(), timedelta(milliseconds=10))
        await ticker.start()
        task = ticker._task
        await ticker.start()
        assert ticker._task is task
        await ticker.stop()

    async def test_failing_tick_keeps_loop_running(self) -> None:
        tick = AsyncMock(side_effect=[RuntimeError("boom"), True, True, True, True, True])
        ticker = WaitTicker(tick, timedelta(milliseconds=5))
        await ticker.start()
        await asyncio.sleep(0.05)
        assert ticker.is_running
        await ticker.stop()
        assert tick.await_count >= 2

    @pytest.mark.parametrize("interval", [timedelta(minutes=1)])
    async def test_stop_before_first_tick(self, interval: timedelta) -> None:
        tick = AsyncMock()
        ticker = WaitTicker(tick, interval)
        await ticker.start()
        await ticker.stop()
        tick.assert_not_awaited()
