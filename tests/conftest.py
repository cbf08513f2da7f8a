"""
Pytest configuration and shared fixtures for the level queue tests.

Testing Standards:
- Async tests run in auto mode (asyncio_mode = "auto" in pyproject.toml)
- Use AsyncMock for async function mocking
- Time-dependent tests use FakeTimeAuthority, never sleep on real time
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/
"""

from pathlib import Path
from typing import Any

import pytest

from src.config.queue_settings import QueueSettings
from src.domain.models.queue_entry import Submitter
from src.infrastructure.stubs.chat_roster_stub import ChatRosterStub
from tests.helpers import FakePresence, FakeTimeAuthority, InMemoryQueueStateRepository


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from src import __version__

    return __version__


@pytest.fixture
def fake_time_authority() -> FakeTimeAuthority:
    return FakeTimeAuthority()


@pytest.fixture
def fake_presence() -> FakePresence:
    return FakePresence()


@pytest.fixture
def memory_repository() -> InMemoryQueueStateRepository:
    return InMemoryQueueStateRepository()


@pytest.fixture
def roster_stub() -> ChatRosterStub:
    return ChatRosterStub()


@pytest.fixture
def make_settings(tmp_path: Path):
    """Build settings with a temporary data directory."""

    def _make(**overrides: Any) -> QueueSettings:
        values: dict[str, Any] = {"channel": "streamer", "data_directory": tmp_path / "data"}
        values.update(overrides)
        return QueueSettings(**values)

    return _make


@pytest.fixture
def alice() -> Submitter:
    return Submitter(id="101", login="alice", display_name="Alice")


@pytest.fixture
def bob() -> Submitter:
    return Submitter(id="102", login="bob", display_name="Bob")


@pytest.fixture
def carol() -> Submitter:
    return Submitter(id="103", login="carol", display_name="Carol")


@pytest.fixture
def streamer() -> Submitter:
    return Submitter(id="1", login="streamer", display_name="Streamer")
