"""Queue service.

Owns the queue state and implements every queue operation. Operations
that only touch the state (add, remove, replace, punt, dismiss, clear,
dip) never suspend, so they are atomic with respect to each other.
Selections and wait ticks wait on the presence view; they are
serialized by a lock and read the queue state only after the presence
snapshot arrived, with no suspension point before they mutate it.

Every mutation schedules a background save unless automatic persistence
was turned off.

Validation failures are not errors: they come back as chat messages
and leave the state unchanged.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

import structlog

from src.application.ports.presence_view import PresenceViewProtocol
from src.application.ports.queue_state_repository import QueueStateRepositoryProtocol
from src.application.ports.time_authority import TimeAuthorityProtocol
from src.application.services.level_resolver import LevelResolver
from src.application.services.selector import POLICY_FILTERS, Selector, build_weighted_list
from src.application.services.wait_time_ledger import WaitTimeLedger
from src.config.queue_settings import QueueSettings
from src.domain.errors.presence import PresenceUnavailableError
from src.domain.models.queue_entry import QueueEntry, Submitter
from src.domain.models.queue_state import QueueState
from src.domain.models.selection import (
    OnlineOfflineList,
    PresenceFilter,
    SelectionPolicy,
    SelectionResult,
    SelectionStatus,
    WeightedList,
    format_chance,
)
from src.domain.models.wait_record import WaitRecord

if TYPE_CHECKING:
    from src.application.services.selector import Choice

logger = structlog.get_logger(__name__)

NOT_QUEUED = -1
LURKING = -2


def ordinal(number: int) -> str:
    """English ordinal, e.g. ``1st``, ``12th``, ``23rd``."""
    if 10 <= number % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


class QueueService:
    """The level queue.

    Args:
        settings: Validated queue settings.
        presence: Merged online presence view.
        repository: Durable storage for the queue state.
        resolver: Resolves submitted text to levels.
        time_authority: Clock for submissions and wait records.
        selector: Selection policies; inject one with a seeded random
            source for reproducible draws.
        ledger: Wait time ledger, built from the settings if omitted.
    """

    def __init__(
        self,
        settings: QueueSettings,
        presence: PresenceViewProtocol,
        repository: QueueStateRepositoryProtocol,
        resolver: LevelResolver,
        time_authority: TimeAuthorityProtocol,
        *,
        selector: Selector | None = None,
        ledger: WaitTimeLedger | None = None,
    ) -> None:
        self._settings = settings
        self._presence = presence
        self._repository = repository
        self._resolver = resolver
        self._time = time_authority
        self._selector = selector if selector is not None else Selector()
        self._ledger = (
            ledger
            if ledger is not None
            else WaitTimeLedger(
                presence,
                time_authority,
                subscriber_multiplier=settings.subscriber_weight_multiplier,
            )
        )
        self._state = QueueState()
        self._persist = True
        self._lock = asyncio.Lock()
        self._log = logger.bind(channel=settings.channel)

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def state(self) -> QueueState:
        return self._state

    @property
    def is_persisting(self) -> bool:
        return self._persist

    def current(self) -> QueueEntry | None:
        return self._state.current

    def levels(self) -> list[QueueEntry]:
        return list(self._state.levels)

    def display(self, entry: QueueEntry) -> str:
        return self._resolver.display(entry)

    async def load(self) -> None:
        """Replace the state with the stored one, upgrading old formats.

        Raises:
            PersistenceError: If the stored state can not be loaded; the
                current state is kept.
        """
        state = await self._repository.load(persistence_enabled=self._persist)
        self._state = state
        self._log.info("queue_state_hydrated", levels=len(state.levels))

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    def add(self, submitter: Submitter, level_text: str) -> str:
        """Submit a level.

        The unlimited submitter (the channel owner) may have any number
        of levels in the queue, including while one of theirs is played.
        """
        log = self._log.bind(submitter=submitter.login)
        name = submitter.display_name
        if len(self._state.levels) >= self._settings.max_size:
            log.info("level_rejected", reason="queue_full")
            return "Sorry, the level queue is full!"
        resolved = self._resolver.resolve(level_text)
        if resolved is None:
            log.info("level_rejected", reason="invalid_code")
            return f"{name}, that is an invalid level code."

        unlimited = self._is_unlimited(submitter)
        if self._state.is_current(submitter) and not unlimited:
            log.info("level_rejected", reason="playing_now")
            return "Please wait for your level to be completed before you submit again."
        if self._state.find_pending(submitter) is not None and not unlimited:
            log.info("level_rejected", reason="already_queued")
            return f"Sorry, {name}, you may only submit one level at a time."

        entry = QueueEntry(
            code=resolved.code,
            type=resolved.type,
            data=resolved.data,
            submitter=submitter,
            submitted_at=self._time.utcnow(),
        )
        self._state.levels.append(entry)
        if submitter.id not in self._state.waiting:
            self._state.waiting[submitter.id] = WaitRecord.create(self._time.utcnow())
        self._schedule_save()
        log.info("level_added", code=entry.code, queue_length=len(self._state.levels))
        return f"{name}, {self.display(entry)} has been added to the queue."

    def remove(self, submitter: Submitter) -> str:
        """Remove every pending level of a submitter."""
        if self._state.is_current(submitter):
            return "Sorry, we're playing that level right now!"
        removed = self._remove_where(lambda entry: entry.belongs_to(submitter))
        self._on_remove(removed)
        self._schedule_save()
        self._log.info("levels_removed", submitter=submitter.login, count=len(removed))
        return f"{submitter.display_name}, your level has been removed from the queue."

    def mod_remove(self, name: str) -> str:
        """Remove the levels of a submitter given by display or login name."""
        if not name.strip():
            return "You can use !remove <username> to kick out someone else's level."
        match = next(
            (entry for entry in self._state.levels if entry.submitter.matches_name(name)),
            None,
        )
        if match is None:
            login = name.strip().lstrip("@").lower()
            for entry in self._state.all_entries():
                if entry.submitter.login == login:
                    self._presence.clear_lurking(entry.submitter.id)
            return f"No levels from {name} were found in the queue."
        removed = self._remove_where(lambda entry: entry.belongs_to(match.submitter))
        self._on_remove(removed)
        self._schedule_save()
        self._log.info("levels_removed_by_moderator", submitter=match.submitter.login)
        return f"{name}'s level has been removed from the queue."

    def replace(self, submitter: Submitter, level_text: str) -> str:
        """Change the level of a submitter's pending or current entry."""
        name = submitter.display_name
        resolved = self._resolver.resolve(level_text)
        if resolved is None:
            return f"{name}, that level code is invalid."
        pending = self._state.find_pending(submitter)
        if pending is not None:
            index = self._state.index_of(pending)
            updated = pending.with_code(resolved.code, resolved.type, resolved.data)
            self._state.levels[index] = updated
        elif self._state.is_current(submitter):
            assert self._state.current is not None
            updated = self._state.current.with_code(resolved.code, resolved.type, resolved.data)
            self._state.current = updated
        else:
            return f"{name}, you were not found in the queue. Use !add to add a level."
        self._schedule_save()
        self._log.info("level_replaced", submitter=submitter.login, code=updated.code)
        return f"{name}, your level in the queue has been replaced with {self.display(updated)}."

    # ------------------------------------------------------------------
    # Current level
    # ------------------------------------------------------------------

    def punt(self) -> str:
        """Put the current level back at the end of the queue."""
        current = self._state.current
        if current is None:
            return "The nothing you aren't playing cannot be punted."
        if len(self._state.levels) >= self._settings.max_size:
            self._log.info("punt_rejected", reason="queue_full")
            return "The queue is full, the current level stays where it is."
        self._state.current = None
        self._state.levels.append(current)
        if current.submitter.id not in self._state.waiting:
            self._state.waiting[current.submitter.id] = WaitRecord.create(self._time.utcnow())
        self._schedule_save()
        self._log.info("level_punted", submitter=current.submitter.login)
        return "Ok, adding the current level back into the queue."

    def dismiss(self) -> str:
        """Drop the current level."""
        current = self._state.current
        if current is None:
            return "The nothing you aren't playing cannot be dismissed."
        response = (
            f"Dismissed {self.display(current)} submitted by "
            f"{current.submitter.display_name}."
        )
        self._state.current = None
        self._on_remove([current])
        self._schedule_save()
        self._log.info("level_dismissed", submitter=current.submitter.login)
        return response

    def clear(self) -> str:
        """Empty the pending list and the current slot."""
        removed = list(self._state.all_entries())
        self._state.current = None
        self._state.levels = []
        self._on_remove(removed)
        self._schedule_save()
        self._log.info("queue_cleared", removed=len(removed))
        return "The queue has been cleared!"

    def dip(self, name: str) -> QueueEntry | None:
        """Promote a named submitter's pending level to current."""
        entry = next(
            (entry for entry in self._state.levels if entry.submitter.matches_name(name)),
            None,
        )
        if entry is None:
            return None
        self._promote(entry)
        self._log.info("level_dipped", submitter=entry.submitter.login)
        return entry

    # ------------------------------------------------------------------
    # Presence queries
    # ------------------------------------------------------------------

    async def list_partition(
        self,
        presence_filter: PresenceFilter = PresenceFilter.ALL,
        *,
        force_refresh: bool = False,
    ) -> OnlineOfflineList:
        """Pending entries partitioned by presence.

        Returns a partition marked unavailable, with no entries, when
        the roster could not be fetched.
        """
        try:
            return await self._fetch_partition(presence_filter, force_refresh=force_refresh)
        except PresenceUnavailableError as exc:
            self._log.warning("list_presence_unavailable", reason=exc.reason)
            return OnlineOfflineList(available=False)

    async def _fetch_partition(
        self,
        presence_filter: PresenceFilter = PresenceFilter.ALL,
        *,
        force_refresh: bool = False,
    ) -> OnlineOfflineList:
        online = await self._presence.online_ids(presence_filter, force_refresh=force_refresh)
        return self._partition(online, presence_filter)

    async def weighted_list(self, sort: bool = True) -> WeightedList:
        """Weighted view of the online entries.

        Raises:
            PresenceUnavailableError: If the roster could not be fetched.
        """
        partition = await self._fetch_partition()
        return build_weighted_list(partition, self._state.waiting, sort=sort)

    async def position(self, submitter: Submitter) -> int:
        """Rank in the selection order: online first, then offline.

        Returns:
            0 while playing, -1 when not queued, otherwise the 1-based
            rank, counting the current level if there is one.

        Raises:
            PresenceUnavailableError: If the roster could not be fetched.
        """
        if self._state.is_current(submitter):
            return 0
        if not self._state.levels:
            return NOT_QUEUED
        order = (await self._fetch_partition()).eligible_order()
        return self._rank(order, submitter)

    def absolute_position(self, submitter: Submitter) -> int:
        """Rank in submission order, ignoring presence."""
        if self._state.is_current(submitter):
            return 0
        if not self._state.levels:
            return NOT_QUEUED
        return self._rank(self._state.levels, submitter)

    async def weighted_position(self, submitter: Submitter) -> int:
        """Rank in the weight-sorted list; -2 while lurking.

        Raises:
            PresenceUnavailableError: If the roster could not be fetched.
        """
        if self._state.is_current(submitter):
            return 0
        if not self._state.levels:
            return NOT_QUEUED
        if self._presence.is_lurking(submitter.id):
            return LURKING
        weighted = await self.weighted_list(sort=True)
        return self._rank([w.entry for w in weighted.entries], submitter)

    async def weighted_chance(self, submitter: Submitter) -> int | str:
        """Chance of winning the next weighted draw.

        Returns:
            0 while playing, -1 when not eligible, -2 while lurking,
            otherwise a percent string such as ``"8.3"``. Never changes
            any state.

        Raises:
            PresenceUnavailableError: If the roster could not be fetched.
        """
        if self._state.is_current(submitter):
            return 0
        if not self._state.levels:
            return NOT_QUEUED
        if self._presence.is_lurking(submitter.id):
            return LURKING
        weighted = await self.weighted_list(sort=False)
        for candidate in weighted.entries:
            if candidate.entry.belongs_to(submitter):
                return format_chance(candidate.weight, weighted.total_weight)
        return NOT_QUEUED

    async def position_message(self, submitter: Submitter) -> str:
        """Chat reply for ``!position``."""
        name = submitter.display_name
        try:
            position = await self.position(submitter)
        except PresenceUnavailableError as exc:
            self._log.warning("position_presence_unavailable", reason=exc.reason)
            return f"{name}, the chat roster is unavailable right now. Please try again later."
        if position == NOT_QUEUED:
            return f"{name}, looks like you're not in the queue. Try !add XXX-XXX-XXX."
        if position == 0:
            return "Your level is being played right now!"
        if self._settings.enable_absolute_position:
            absolute = self.absolute_position(submitter)
            return (
                f"{name}, you are currently in the online {ordinal(position)} position "
                f"and the offline {ordinal(absolute)} position."
            )
        return f"{name}, you are currently in the {ordinal(position)} position."

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    async def select(self, policy: SelectionPolicy) -> SelectionResult:
        """Make the next level current according to a policy.

        An empty result also clears the current level. When presence is
        unavailable nothing changes.
        """
        presence_filter = POLICY_FILTERS[policy]
        async with self._lock:
            try:
                online = await self._presence.online_ids(presence_filter, force_refresh=True)
            except PresenceUnavailableError as exc:
                self._log.warning("selection_presence_unavailable", policy=policy.value, reason=exc.reason)
                return SelectionResult(SelectionStatus.PRESENCE_UNAVAILABLE, policy=policy)
            # no suspension point from here on
            partition = self._partition(online, presence_filter)
            choice: Choice | None = self._selector.choose(policy, partition, self._state.waiting)
            if choice is None:
                removed = [self._state.current] if self._state.current else []
                self._state.current = None
                self._on_remove(removed)
                self._schedule_save()
                self._log.info("selection_empty", policy=policy.value)
                return SelectionResult(SelectionStatus.EMPTY, policy=policy)
            self._promote(choice.entry)
            self._log.info(
                "level_selected",
                policy=policy.value,
                submitter=choice.entry.submitter.login,
                code=choice.entry.code,
                selection_chance=choice.selection_chance,
            )
            return SelectionResult(
                SelectionStatus.SELECTED,
                entry=choice.entry,
                policy=policy,
                selection_chance=choice.selection_chance,
            )

    async def tick_wait_times(self) -> bool:
        """Run one wait time ledger tick and save."""
        async with self._lock:
            ticked = await self._ledger.tick(self._state)
        if ticked:
            self._schedule_save()
        return ticked

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save(self, *, force: bool = False) -> bool:
        """Write the state now and wait for the result."""
        if not (self._persist or force):
            return False
        await self._repository.flush()
        return await self._repository.save(self._state)

    async def persistence_management(self, sub_command: str) -> str:
        """Handle ``on``, ``off``, ``save`` and ``load``."""
        sub_command = sub_command.strip().lower()
        if sub_command == "on":
            self._persist = True
            self._log.info("persistence_enabled")
            return "Activated automatic queue persistence."
        if sub_command == "off":
            self._persist = False
            self._log.warning("persistence_disabled")
            return "Deactivated automatic queue persistence."
        if sub_command == "save":
            if await self.save(force=True):
                return "Successfully persisted the queue state."
            return "Error while persisting queue state, see logs."
        if sub_command in ("load", "reload", "restore"):
            await self._repository.flush()
            await self.load()
            return "Reloaded queue state from disk."
        return "Invalid arguments. The correct syntax is !persistence {on/off/save/load}."

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_unlimited(self, submitter: Submitter) -> bool:
        return submitter.login == self._settings.channel

    def _partition(
        self,
        online: frozenset[str],
        presence_filter: PresenceFilter = PresenceFilter.ALL,
    ) -> OnlineOfflineList:
        partition = OnlineOfflineList()
        for entry in self._state.levels:
            if entry.submitter.id in online:
                partition.online.append(entry)
            elif self._presence.has_role(entry.submitter.id, presence_filter):
                partition.offline.append(entry)
        return partition

    def _rank(self, order: Iterable[QueueEntry], submitter: Submitter) -> int:
        offset = 1 if self._state.current is not None else 0
        for index, entry in enumerate(order):
            if entry.belongs_to(submitter):
                return index + 1 + offset
        return NOT_QUEUED

    def _promote(self, entry: QueueEntry) -> None:
        removed = [self._state.current] if self._state.current else []
        self._state.current = entry
        index = self._state.index_of(entry)
        if index != -1:
            del self._state.levels[index]
        self._state.waiting.pop(entry.submitter.id, None)
        self._on_remove(removed)
        self._schedule_save()

    def _remove_where(self, predicate: Callable[[QueueEntry], bool]) -> list[QueueEntry]:
        kept: list[QueueEntry] = []
        removed: list[QueueEntry] = []
        for entry in self._state.levels:
            (removed if predicate(entry) else kept).append(entry)
        self._state.levels = kept
        return removed

    def _on_remove(self, removed: Iterable[QueueEntry]) -> None:
        for entry in removed:
            self._presence.clear_lurking(entry.submitter.id)

    def _schedule_save(self) -> None:
        if self._persist:
            self._repository.schedule_save(self._state)
