"""Test helpers for the level queue tests.

Helpers:
    FakeTimeAuthority: Controllable clock for deterministic tests
    FakePresence: Presence view backed by plain sets
    InMemoryQueueStateRepository: Queue state storage without files

Usage:
    from tests.helpers import FakeTimeAuthority
"""

from tests.helpers.fake_time_authority import FakeTimeAuthority
from tests.helpers.fakes import FakePresence, InMemoryQueueStateRepository

__all__ = ["FakePresence", "FakeTimeAuthority", "InMemoryQueueStateRepository"]
