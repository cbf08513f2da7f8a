"""System time authority.

Production implementation of TimeAuthorityProtocol backed by the system
clock. Timestamps are always timezone-aware UTC.
"""

import time
from datetime import datetime, timezone

from src.application.ports.time_authority import TimeAuthorityProtocol


class SystemTimeAuthority(TimeAuthorityProtocol):
    """Time authority reading the system clock.

    Example:
        >>> clock = SystemTimeAuthority()
        >>> clock.utcnow().tzinfo is timezone.utc
        True
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def utcnow(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()
