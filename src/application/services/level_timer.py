"""Level timer.

Tracks how long the current level has been played, so the broadcaster
is reminded when the configured level timeout is reached. The timer is
an explicit state machine driven by the monotonic clock:

    Stopped --start--> Running(deadline)
    Running --pause--> Paused(remaining)
    Paused  --resume-> Running(now + remaining)
    any     --restart-> Running(now + duration)
    any     --stop---> Stopped

Expiry is polled with ``expired()``; nothing fires on its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

import structlog

from src.application.ports.time_authority import TimeAuthorityProtocol

logger = structlog.get_logger(__name__)


class TimerStatus(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class TimerState:
    """Snapshot of the timer.

    Attributes:
        status: Current state.
        deadline: Monotonic deadline while running.
        remaining: Seconds left while paused.
    """

    status: TimerStatus
    deadline: float | None = None
    remaining: float | None = None


class LevelTimer:
    """Pausable countdown for the level being played."""

    def __init__(self, duration: timedelta, time_authority: TimeAuthorityProtocol) -> None:
        if duration.total_seconds() <= 0:
            raise ValueError("level timer duration must be positive")
        self._duration = duration.total_seconds()
        self._time = time_authority
        self._state = TimerState(TimerStatus.STOPPED)

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def status(self) -> TimerStatus:
        return self._state.status

    def start(self) -> bool:
        """Start from the full duration. Returns False unless stopped."""
        if self._state.status is not TimerStatus.STOPPED:
            return False
        self._run_for(self._duration)
        return True

    def restart(self) -> None:
        self._run_for(self._duration)

    def pause(self) -> bool:
        """Freeze the remaining time. Returns False unless running."""
        if self._state.status is not TimerStatus.RUNNING:
            return False
        remaining = self.remaining()
        self._state = TimerState(TimerStatus.PAUSED, remaining=remaining)
        logger.debug("level_timer_paused", remaining=remaining)
        return True

    def resume(self) -> bool:
        """Continue a paused timer. Returns False unless paused."""
        if self._state.status is not TimerStatus.PAUSED:
            return False
        assert self._state.remaining is not None
        self._run_for(self._state.remaining)
        return True

    def stop(self) -> None:
        self._state = TimerState(TimerStatus.STOPPED)

    def remaining(self) -> float:
        """Seconds left; 0 when stopped or expired."""
        if self._state.status is TimerStatus.RUNNING:
            assert self._state.deadline is not None
            return max(self._state.deadline - self._time.monotonic(), 0.0)
        if self._state.status is TimerStatus.PAUSED:
            assert self._state.remaining is not None
            return self._state.remaining
        return 0.0

    def expired(self) -> bool:
        """True once a running timer reached its deadline."""
        return self._state.status is TimerStatus.RUNNING and self.remaining() <= 0

    def _run_for(self, seconds: float) -> None:
        deadline = self._time.monotonic() + seconds
        self._state = TimerState(TimerStatus.RUNNING, deadline=deadline)
        logger.debug("level_timer_running", seconds=seconds)
