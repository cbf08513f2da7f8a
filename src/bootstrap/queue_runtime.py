"""Bootstrap wiring for the queue runtime.

Builds every queue service from the settings and a chat roster, loads
the stored state before any command is accepted, and runs the wait time
ticker while the runtime is started.
"""

from __future__ import annotations

import random

import structlog

from src.application.ports.chat_roster import ChatRosterProtocol
from src.application.ports.time_authority import TimeAuthorityProtocol
from src.application.services.custom_code_service import CustomCodeService
from src.application.services.level_resolver import LevelResolver
from src.application.services.level_timer import LevelTimer
from src.application.services.online_presence_service import OnlinePresenceService
from src.application.services.queue_service import QueueService
from src.application.services.selector import SelectionCycle, Selector
from src.application.services.time_authority_service import SystemTimeAuthority
from src.application.services.wait_time_ledger import WaitTicker, WaitTimeLedger
from src.config.queue_settings import QueueSettings
from src.domain.models.custom_codes import CustomCodes
from src.domain.models.queue_entry import Submitter
from src.domain.models.selection import OnlineOfflineList, SelectionResult, SelectionStatus
from src.infrastructure.cache.roster_cache import RosterCache
from src.infrastructure.observability import bind_channel, unbind_channel
from src.infrastructure.persistence.custom_code_repository import JsonCustomCodeRepository
from src.infrastructure.persistence.queue_state_repository import JsonQueueStateRepository

logger = structlog.get_logger(__name__)


class QueueNotLoadedError(RuntimeError):
    """Raised when a command arrives before the state was loaded."""


class QueueRuntime:
    """The assembled queue, ready to serve chat commands."""

    def __init__(
        self,
        settings: QueueSettings,
        roster: ChatRosterProtocol,
        *,
        time_authority: TimeAuthorityProtocol | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Wire the queue services.

        Args:
            settings: Validated queue settings.
            roster: Live chat roster of the streaming platform.
            time_authority: Clock, the system clock if omitted.
            rng: Random source for random and weighted selection.
        """
        self.settings = settings
        self.time = time_authority if time_authority is not None else SystemTimeAuthority()
        data_directory = settings.data_directory

        self.roster_cache = RosterCache(
            roster,
            self.time,
            ttl=settings.roster_cache_ttl,
            timeout=settings.presence_timeout,
        )
        self.presence = OnlinePresenceService(
            self.roster_cache,
            self.time,
            grace_period=settings.presence_grace_period,
        )
        self.resolver = LevelResolver(settings, CustomCodes())
        self.custom_codes = CustomCodeService(
            self.resolver,
            JsonCustomCodeRepository(
                data_directory,
                data_directory.parent,
                pretty=settings.pretty_save_files,
            ),
        )
        self.repository = JsonQueueStateRepository(
            data_directory,
            roster,
            self.time,
            pretty=settings.pretty_save_files,
        )
        self.queue = QueueService(
            settings,
            self.presence,
            self.repository,
            self.resolver,
            self.time,
            selector=Selector(rng),
            ledger=WaitTimeLedger(
                self.presence,
                self.time,
                subscriber_multiplier=settings.subscriber_weight_multiplier,
            ),
        )
        self.ticker = WaitTicker(self.queue.tick_wait_times, settings.wait_tick_interval)
        self.cycle = SelectionCycle(settings.selection_policies)
        self.timer = (
            LevelTimer(settings.level_timeout, self.time) if settings.level_timeout else None
        )
        self.is_open = settings.start_open
        self._loaded = False
        self._last_list: float | None = None

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def start(self) -> None:
        """Load stored state and start the wait ticker.

        Raises:
            PersistenceError: If stored state can not be loaded. The
                runtime stays unloaded and refuses commands.
        """
        bind_channel(self.settings.channel)
        if self.settings.custom_codes_enabled:
            await self.custom_codes.load()
        await self.queue.load()
        self._loaded = True
        await self.ticker.start()
        logger.info(
            "queue_runtime_started",
            channel=self.settings.channel,
            level_selection=self.settings.level_selection,
            is_open=self.is_open,
        )

    async def stop(self) -> None:
        await self.ticker.stop()
        await self.repository.flush()
        logger.info("queue_runtime_stopped")
        unbind_channel()

    def open(self) -> str:
        self.is_open = True
        return "The queue is now open!"

    def close(self) -> str:
        self.is_open = False
        return "The queue is now closed!"

    def add(self, submitter: Submitter, level_text: str) -> str:
        """Submit a level, honoring the open/closed state."""
        self._require_loaded()
        is_broadcaster = submitter.login == self.settings.channel
        if not (self.is_open or is_broadcaster):
            return "Sorry, the queue is closed right now."
        self.presence.clear_lurking(submitter.id)
        return self.queue.add(submitter, level_text)

    async def select(self) -> SelectionResult:
        """Select the next level with the next policy of the configured cycle."""
        self._require_loaded()
        policy = self.cycle.next()
        result = await self.queue.select(policy)
        if self.timer is not None and result.status is not SelectionStatus.PRESENCE_UNAVAILABLE:
            # reset to the full duration, started explicitly by the broadcaster
            self.timer.restart()
            self.timer.pause()
        return result

    async def list_levels(self) -> OnlineOfflineList | None:
        """Pending levels by presence, None while the list cooldown runs."""
        self._require_loaded()
        cooldown = self.settings.message_cooldown
        now = self.time.monotonic()
        if (
            cooldown is not None
            and self._last_list is not None
            and now - self._last_list < cooldown.total_seconds()
        ):
            logger.debug("list_cooldown_active")
            return None
        self._last_list = now
        return await self.queue.list_partition()

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise QueueNotLoadedError("queue state has not been loaded yet")
