"""
Integration test configuration.

Integration tests run the fully wired QueueRuntime against real save
files in a temporary directory, with the in-memory chat roster and a
fake clock standing in for the streaming platform.

Usage:
    @pytest.mark.integration
    async def test_example(runtime_factory) -> None:
        runtime = runtime_factory(start_open=True)
        await runtime.start()
        ...
"""

import random
from pathlib import Path
from typing import Any

import pytest

from src.bootstrap.queue_runtime import QueueRuntime
from src.config.queue_settings import QueueSettings
from src.domain.models.queue_entry import Submitter
from src.infrastructure.stubs.chat_roster_stub import ChatRosterStub
from tests.helpers import FakeTimeAuthority


@pytest.fixture
def chat(alice: Submitter, bob: Submitter, carol: Submitter, streamer: Submitter) -> ChatRosterStub:
    """Roster with everyone registered and in chat."""
    roster = ChatRosterStub()
    for user in (alice, bob, carol, streamer):
        roster.add_user(user, in_chat=True)
    return roster


@pytest.fixture
def runtime_factory(
    tmp_path: Path, chat: ChatRosterStub, fake_time_authority: FakeTimeAuthority
):
    """Build runtimes sharing one data directory, roster and clock."""

    def _make(**overrides: Any) -> QueueRuntime:
        values: dict[str, Any] = {"channel": "streamer", "data_directory": tmp_path / "data"}
        values.update(overrides)
        return QueueRuntime(
            QueueSettings(**values),
            chat,
            time_authority=fake_time_authority,
            rng=random.Random(1234),
        )

    return _make
