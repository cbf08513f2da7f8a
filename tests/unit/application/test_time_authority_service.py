"""Unit tests for SystemTimeAuthority."""

from datetime import timezone

from src.application.ports.time_authority import TimeAuthorityProtocol
from src.application.services.time_authority_service import SystemTimeAuthority


class TestSystemTimeAuthority:
    def test_implements_protocol(self) -> None:
        assert isinstance(SystemTimeAuthority(), TimeAuthorityProtocol)

    def test_timestamps_are_utc(self) -> None:
        clock = SystemTimeAuthority()
        assert clock.now().tzinfo is timezone.utc
        assert clock.utcnow().tzinfo is timezone.utc

    def test_monotonic_never_decreases(self) -> None:
        clock = SystemTimeAuthority()
        first = clock.monotonic()
        assert clock.monotonic() >= first
