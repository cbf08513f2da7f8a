"""Unit tests for QueueRuntime wiring."""

import json
import random
from collections.abc import AsyncIterator
from datetime import timedelta

import pytest

from src.application.services.level_timer import TimerStatus
from src.bootstrap.queue_runtime import QueueNotLoadedError, QueueRuntime
from src.domain.models.queue_entry import Submitter
from src.domain.models.selection import SelectionPolicy, SelectionStatus
from src.infrastructure.stubs.chat_roster_stub import ChatRosterStub
from tests.helpers import FakeTimeAuthority
from tests.helpers.level_codes import COURSE_CODE, OTHER_COURSE_CODE


@pytest.fixture
def roster(alice: Submitter, bob: Submitter, streamer: Submitter) -> ChatRosterStub:
    stub = ChatRosterStub()
    for user in (alice, bob, streamer):
        stub.add_user(user, in_chat=True)
    return stub


@pytest.fixture
def make_runtime(make_settings, roster: ChatRosterStub, fake_time_authority: FakeTimeAuthority):
    def _make(**overrides) -> QueueRuntime:
        return QueueRuntime(
            make_settings(**overrides),
            roster,
            time_authority=fake_time_authority,
            rng=random.Random(7),
        )

    return _make


@pytest.fixture
async def runtime(make_runtime) -> AsyncIterator[QueueRuntime]:
    runtime = make_runtime(
        start_open=True,
        level_selection=["next", "random"],
        level_timeout=timedelta(minutes=5),
    )
    await runtime.start()
    yield runtime
    await runtime.stop()


class TestLifecycle:
    def test_commands_refused_before_start(self, make_runtime, alice: Submitter) -> None:
        runtime = make_runtime()
        assert not runtime.loaded
        with pytest.raises(QueueNotLoadedError):
            runtime.add(alice, COURSE_CODE)

    async def test_start_creates_save_file(self, runtime: QueueRuntime) -> None:
        assert runtime.loaded
        assert runtime.ticker.is_running
        document = json.loads(runtime.repository.path.read_text(encoding="utf-8"))
        assert document["version"] == 3

    async def test_stop_flushes_pending_saves(self, make_runtime, alice: Submitter) -> None:
        runtime = make_runtime(start_open=True)
        await runtime.start()
        runtime.add(alice, COURSE_CODE)
        await runtime.stop()

        document = json.loads(runtime.repository.path.read_text(encoding="utf-8"))
        assert [entry["code"] for entry in document["queue"]] == [COURSE_CODE]
        assert not runtime.ticker.is_running

    async def test_custom_codes_loaded_when_enabled(self, make_runtime, alice: Submitter) -> None:
        runtime = make_runtime(start_open=True, custom_codes_enabled=True)
        runtime.settings.data_directory.mkdir(parents=True)
        (runtime.settings.data_directory / "customCodes.json").write_text(
            json.dumps([["kaizo", COURSE_CODE]]), encoding="utf-8"
        )
        await runtime.start()
        try:
            assert runtime.add(alice, "kaizo") == f"Alice, {COURSE_CODE} has been added to the queue."
        finally:
            await runtime.stop()


class TestOpenClose:
    async def test_closed_queue_only_accepts_broadcaster(
        self, runtime: QueueRuntime, alice: Submitter, streamer: Submitter
    ) -> None:
        assert runtime.close() == "The queue is now closed!"

        assert runtime.add(alice, COURSE_CODE) == "Sorry, the queue is closed right now."
        assert runtime.add(streamer, COURSE_CODE).endswith("has been added to the queue.")

    async def test_reopen(self, runtime: QueueRuntime, alice: Submitter) -> None:
        runtime.close()
        assert runtime.open() == "The queue is now open!"
        assert runtime.add(alice, COURSE_CODE) == f"Alice, {COURSE_CODE} has been added to the queue."

    async def test_adding_ends_lurking(self, runtime: QueueRuntime, alice: Submitter) -> None:
        runtime.presence.set_lurking(alice.id)
        runtime.add(alice, COURSE_CODE)
        assert not runtime.presence.is_lurking(alice.id)


class TestSelection:
    async def test_policies_are_cycled(
        self, runtime: QueueRuntime, alice: Submitter, bob: Submitter
    ) -> None:
        runtime.add(alice, COURSE_CODE)
        runtime.add(bob, OTHER_COURSE_CODE)

        first = await runtime.select()
        second = await runtime.select()
        third = await runtime.select()

        assert runtime.cycle.policies == runtime.settings.selection_policies
        assert first.policy is SelectionPolicy.NEXT
        assert first.entry is not None and first.entry.submitter == alice
        assert second.policy is SelectionPolicy.RANDOM
        assert second.entry is not None and second.entry.submitter == bob
        assert third.policy is SelectionPolicy.NEXT
        assert third.status is SelectionStatus.EMPTY

    async def test_timer_is_reset_and_paused(
        self,
        runtime: QueueRuntime,
        alice: Submitter,
        fake_time_authority: FakeTimeAuthority,
    ) -> None:
        runtime.add(alice, COURSE_CODE)
        assert runtime.timer is not None
        runtime.timer.start()
        fake_time_authority.advance(minutes=2)

        await runtime.select()

        assert runtime.timer.status is TimerStatus.PAUSED
        assert runtime.timer.remaining() == 300.0

    async def test_presence_failure_leaves_timer_alone(
        self, runtime: QueueRuntime, roster: ChatRosterStub, alice: Submitter
    ) -> None:
        runtime.add(alice, COURSE_CODE)
        roster.set_failure(ConnectionError("platform down"))

        result = await runtime.select()

        assert result.status is SelectionStatus.PRESENCE_UNAVAILABLE
        assert runtime.timer is not None
        assert runtime.timer.status is TimerStatus.STOPPED
        assert [entry.submitter for entry in runtime.queue.levels()] == [alice]

    async def test_no_timer_without_timeout(self, make_runtime) -> None:
        assert make_runtime().timer is None


class TestListCooldown:
    async def test_list_is_rate_limited(
        self, make_runtime, alice: Submitter, fake_time_authority: FakeTimeAuthority
    ) -> None:
        runtime = make_runtime(start_open=True, message_cooldown="30s")
        await runtime.start()
        try:
            runtime.add(alice, COURSE_CODE)

            first = await runtime.list_levels()
            assert first is not None
            assert [entry.submitter for entry in first.online] == [alice]

            fake_time_authority.advance(10)
            assert await runtime.list_levels() is None

            fake_time_authority.advance(20)
            assert await runtime.list_levels() is not None
        finally:
            await runtime.stop()

    async def test_no_cooldown_configured(self, runtime: QueueRuntime) -> None:
        assert await runtime.list_levels() is not None
        assert await runtime.list_levels() is not None
