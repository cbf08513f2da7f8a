"""Selection domain models.

Defines the selection policies, the presence partition consumed by the
selector, the weighted list used by the lottery, and selection results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from src.domain.models.queue_entry import QueueEntry


class SelectionPolicy(str, Enum):
    """Names of the level selection policies."""

    NEXT = "next"
    SUBNEXT = "subnext"
    MODNEXT = "modnext"
    RANDOM = "random"
    SUBRANDOM = "subrandom"
    MODRANDOM = "modrandom"
    WEIGHTEDRANDOM = "weightedrandom"
    WEIGHTEDNEXT = "weightednext"
    WEIGHTEDSUBRANDOM = "weightedsubrandom"
    WEIGHTEDSUBNEXT = "weightedsubnext"

    @classmethod
    def parse(cls, name: str) -> SelectionPolicy:
        """Parse a policy name, falling back to NEXT for unknown names."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            return cls.NEXT


class PresenceFilter(str, Enum):
    """Narrows the online set to a role."""

    ALL = "all"
    SUBSCRIBERS = "subscribers"
    MODERATORS = "moderators"


class SelectionStatus(str, Enum):
    """Outcome of a selection."""

    SELECTED = "selected"
    EMPTY = "empty"
    PRESENCE_UNAVAILABLE = "presence_unavailable"


@dataclass(frozen=True)
class OnlineOfflineList:
    """Pending entries partitioned by submitter presence, FIFO in each part.

    ``available`` is False when presence could not be determined; both
    parts are empty then.
    """

    online: list[QueueEntry] = field(default_factory=list)
    offline: list[QueueEntry] = field(default_factory=list)
    available: bool = True

    def eligible_order(self) -> list[QueueEntry]:
        """Online entries first, then offline entries."""
        return self.online + self.offline


@dataclass(frozen=True)
class WeightedEntry:
    """An online entry with its submitter's weight.

    Attributes:
        entry: The queue entry.
        weight: Rounded weight of the submitter.
        position: Index within the online list (FIFO order).
    """

    entry: QueueEntry
    weight: int
    position: int


@dataclass(frozen=True)
class WeightedList:
    """Weighted view of the online entries.

    Attributes:
        total_weight: Sum of all entry weights.
        entries: Entries with a wait record.
        offline_length: Entries excluded (offline or without record).
    """

    total_weight: int
    entries: list[WeightedEntry]
    offline_length: int


@dataclass(frozen=True)
class SelectionResult:
    """Result of a selection operation.

    Attributes:
        status: What happened.
        entry: The new current entry when selected.
        policy: The policy that was applied.
        selection_chance: Percent string for weighted policies.
    """

    status: SelectionStatus
    entry: QueueEntry | None = None
    policy: SelectionPolicy | None = None
    selection_chance: str | None = None

    @property
    def selected(self) -> bool:
        return self.status is SelectionStatus.SELECTED


def format_chance(weight: float, total_weight: float) -> str:
    """Format a selection chance as a percentage with one decimal.

    Returns ``">99.9"`` when the value rounds to 100 but is not certain
    and ``"<0.1"`` when it rounds to 0 but is not impossible.
    """
    if total_weight <= 0:
        return "0.0"
    percent = min(max(weight / total_weight * 100.0, 0.0), 100.0)
    text = f"{percent:.1f}"
    if text == "100.0" and weight != total_weight:
        return ">99.9"
    if text == "0.0" and weight != 0:
        return "<0.1"
    return text
