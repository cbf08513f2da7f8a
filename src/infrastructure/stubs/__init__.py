"""Stub implementations for local development and tests."""

from src.infrastructure.stubs.chat_roster_stub import ChatRosterStub

__all__: list[str] = ["ChatRosterStub"]
