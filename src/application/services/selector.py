"""Level selection policies.

The selector picks the next level from a presence partition of the
pending entries. It never mutates queue state and never waits on
anything: the queue service hands it a snapshot and applies the choice.

Policies:
    next            first online entry, else first offline entry (FIFO)
    random          uniform among online entries, else among offline
    weightedrandom  lottery among online entries with a wait record,
                    chance proportional to the submitter's weight
    weightednext    highest weight first, ties by FIFO position

The ``sub`` and ``mod`` variants use the same rules over a partition
whose online and offline groups both hold only subscribers or moderators.

Weighted Draw:
    One uniform draw ``r`` in ``[0, total_weight)``; entries are walked
    in FIFO order and the first whose cumulative weight exceeds ``r``
    wins. With weights ``[1, 11]`` a draw of 6 selects the second entry.
"""

from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import structlog

from src.domain.models.queue_entry import QueueEntry
from src.domain.models.selection import (
    OnlineOfflineList,
    PresenceFilter,
    SelectionPolicy,
    WeightedEntry,
    WeightedList,
    format_chance,
)
from src.domain.models.wait_record import WaitRecord

logger = structlog.get_logger(__name__)

POLICY_FILTERS: dict[SelectionPolicy, PresenceFilter] = {
    SelectionPolicy.NEXT: PresenceFilter.ALL,
    SelectionPolicy.RANDOM: PresenceFilter.ALL,
    SelectionPolicy.WEIGHTEDRANDOM: PresenceFilter.ALL,
    SelectionPolicy.WEIGHTEDNEXT: PresenceFilter.ALL,
    SelectionPolicy.SUBNEXT: PresenceFilter.SUBSCRIBERS,
    SelectionPolicy.SUBRANDOM: PresenceFilter.SUBSCRIBERS,
    SelectionPolicy.WEIGHTEDSUBRANDOM: PresenceFilter.SUBSCRIBERS,
    SelectionPolicy.WEIGHTEDSUBNEXT: PresenceFilter.SUBSCRIBERS,
    SelectionPolicy.MODNEXT: PresenceFilter.MODERATORS,
    SelectionPolicy.MODRANDOM: PresenceFilter.MODERATORS,
}

_SEQUENTIAL = {SelectionPolicy.NEXT, SelectionPolicy.SUBNEXT, SelectionPolicy.MODNEXT}
_RANDOM = {SelectionPolicy.RANDOM, SelectionPolicy.SUBRANDOM, SelectionPolicy.MODRANDOM}
_WEIGHTED_RANDOM = {SelectionPolicy.WEIGHTEDRANDOM, SelectionPolicy.WEIGHTEDSUBRANDOM}
_WEIGHTED_NEXT = {SelectionPolicy.WEIGHTEDNEXT, SelectionPolicy.WEIGHTEDSUBNEXT}


@dataclass(frozen=True)
class Choice:
    """A chosen entry, with its chance for weighted policies."""

    entry: QueueEntry
    selection_chance: str | None = None


def build_weighted_list(
    partition: OnlineOfflineList,
    waiting: Mapping[str, WaitRecord],
    *,
    sort: bool = True,
) -> WeightedList:
    """Weighted view of the online entries that have a wait record.

    Args:
        partition: Presence partition of the pending entries.
        waiting: Wait records keyed by submitter id.
        sort: Order by weight descending, then FIFO position.
    """
    if not partition.online or not waiting:
        return WeightedList(
            total_weight=0,
            entries=[],
            offline_length=len(partition.offline) + len(partition.online),
        )
    entries = [
        WeightedEntry(entry=entry, weight=waiting[entry.submitter.id].weight(), position=position)
        for position, entry in enumerate(
            entry for entry in partition.online if entry.submitter.id in waiting
        )
    ]
    if sort:
        entries.sort(key=lambda weighted: (-weighted.weight, weighted.position))
    return WeightedList(
        total_weight=sum(weighted.weight for weighted in entries),
        entries=entries,
        offline_length=len(partition.offline) + len(partition.online) - len(entries),
    )


class Selector:
    """Applies selection policies to presence partitions."""

    def __init__(self, rng: random.Random | None = None) -> None:
        """Initialize the selector.

        Args:
            rng: Random source; inject a seeded instance for reproducible draws.
        """
        self._rng = rng if rng is not None else random.Random()

    def choose(
        self,
        policy: SelectionPolicy,
        partition: OnlineOfflineList,
        waiting: Mapping[str, WaitRecord],
    ) -> Choice | None:
        """Pick an entry, None if the policy finds nothing eligible."""
        if policy in _SEQUENTIAL:
            eligible = partition.eligible_order()
            return Choice(eligible[0]) if eligible else None
        if policy in _RANDOM:
            eligible = partition.online or partition.offline
            return Choice(self._rng.choice(eligible)) if eligible else None
        if policy in _WEIGHTED_RANDOM:
            return self.weighted_draw(build_weighted_list(partition, waiting, sort=False))
        if policy in _WEIGHTED_NEXT:
            weighted = build_weighted_list(partition, waiting, sort=True)
            if not weighted.entries:
                return None
            top = weighted.entries[0]
            return Choice(top.entry, format_chance(top.weight, weighted.total_weight))
        raise ValueError(f"unsupported selection policy {policy!r}")

    def weighted_draw(self, weighted: WeightedList) -> Choice | None:
        """Draw one entry with probability proportional to its weight."""
        if not weighted.entries or weighted.total_weight <= 0:
            return None
        draw = self._rng.random() * weighted.total_weight
        return self.pick_by_draw(weighted, draw)

    @staticmethod
    def pick_by_draw(weighted: WeightedList, draw: float) -> Choice:
        """Select the first entry whose cumulative weight exceeds ``draw``.

        Args:
            weighted: Non-empty weighted list in walk order.
            draw: Value in ``[0, total_weight)``.
        """
        cumulative = 0
        chosen = weighted.entries[-1]
        for candidate in weighted.entries:
            cumulative += candidate.weight
            if cumulative > draw:
                chosen = candidate
                break
        logger.debug(
            "weighted_draw",
            draw=draw,
            total_weight=weighted.total_weight,
            eligible=[candidate.entry.submitter.login for candidate in weighted.entries],
            chosen=chosen.entry.submitter.login,
            cumulative=cumulative,
        )
        return Choice(chosen.entry, format_chance(chosen.weight, weighted.total_weight))


class SelectionCycle:
    """Round-robin over the configured selection policies.

    Unknown policy names fall back to ``next``.
    """

    def __init__(self, policies: Sequence[str | SelectionPolicy]) -> None:
        parsed = [
            policy if isinstance(policy, SelectionPolicy) else SelectionPolicy.parse(policy)
            for policy in policies
        ]
        self._policies = parsed or [SelectionPolicy.NEXT]
        self._index = 0

    @property
    def policies(self) -> list[SelectionPolicy]:
        return list(self._policies)

    def next(self) -> SelectionPolicy:
        policy = self._policies[self._index]
        self._index = (self._index + 1) % len(self._policies)
        return policy
