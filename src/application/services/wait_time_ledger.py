"""Wait time ledger.

Every tick, each online participant with a pending level earns one
minute of weight (times the subscriber multiplier for subscribers).
Participants seen online for the first time get a fresh record at the
base weight. A tick builds a complete new mapping and swaps it in, so
it either fully applies or not at all.

The ``WaitTicker`` runs ticks in the background at a fixed interval.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Optional

import structlog

from src.application.ports.presence_view import PresenceViewProtocol
from src.application.ports.time_authority import TimeAuthorityProtocol
from src.domain.errors.presence import PresenceUnavailableError
from src.domain.models.queue_state import QueueState
from src.domain.models.wait_record import WaitRecord

logger = structlog.get_logger(__name__)


class WaitTimeLedger:
    """Accrues wait weight for online participants."""

    def __init__(
        self,
        presence: PresenceViewProtocol,
        time_authority: TimeAuthorityProtocol,
        *,
        subscriber_multiplier: float | None = None,
    ) -> None:
        """Initialize the ledger.

        Args:
            presence: Merged online presence view.
            time_authority: Clock for last-online timestamps.
            subscriber_multiplier: Weight per minute for subscribers,
                None to treat everyone the same.
        """
        self._presence = presence
        self._time = time_authority
        self._subscriber_multiplier = subscriber_multiplier

    def multiplier(self, submitter_id: str) -> float:
        if self._subscriber_multiplier and self._presence.is_subscriber(submitter_id):
            return self._subscriber_multiplier
        return 1.0

    async def tick(self, state: QueueState) -> bool:
        """Add one minute for everyone online with a pending level.

        Returns:
            False if presence was unavailable and nothing changed.
        """
        try:
            online = await self._presence.online_ids()
        except PresenceUnavailableError as exc:
            logger.warning("wait_tick_skipped", reason=exc.reason)
            return False

        now = self._time.utcnow()
        waiting = dict(state.waiting)
        credited: set[str] = set()
        for entry in state.levels:
            submitter_id = entry.submitter.id
            if submitter_id not in online or submitter_id in credited:
                continue
            credited.add(submitter_id)
            record = waiting.get(submitter_id)
            if record is None:
                waiting[submitter_id] = WaitRecord.create(now)
            else:
                waiting[submitter_id] = record.add_minute(self.multiplier(submitter_id), now)
        state.waiting = waiting
        logger.debug("wait_tick_applied", credited=len(credited), waiting=len(waiting))
        return True


class WaitTicker:
    """Runs a tick callback at a fixed interval until stopped.

    Example:
        ticker = WaitTicker(queue_service.tick_wait_times, timedelta(minutes=1))
        await ticker.start()
        ...
        await ticker.stop()
    """

    def __init__(
        self,
        tick: Callable[[], Awaitable[object]],
        interval: timedelta = timedelta(minutes=1),
    ) -> None:
        self._tick = tick
        self._interval = interval.total_seconds()
        self._running: bool = False
        self._task: Optional[asyncio.Task[None]] = None
        self._log = structlog.get_logger().bind(service="wait_ticker")

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the tick loop. Does nothing if already running."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        self._log.info("wait_ticker_started", interval=self._interval)

    async def stop(self) -> None:
        """Stop the tick loop and wait for it to finish."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._log.info("wait_ticker_stopped")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._interval)
                await self._tick()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._log.error("wait_tick_failed", error=str(e))
