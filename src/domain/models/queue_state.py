"""Queue state aggregate.

QueueState is the single owned value holding everything the queue
persists: the pending levels in submission order, the level currently
being played, the wait records, and opaque extension data.

Invariants:
- ``current`` is None or exactly one entry, never also in ``levels``
- A submitter appears at most once across ``levels`` and ``current``,
  unless they are the unlimited submitter (checked by the queue service)
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from src.domain.models.queue_entry import QueueEntry, Submitter
from src.domain.models.wait_record import WaitRecord


@dataclass
class QueueState:
    """Mutable queue state owned by the queue service.

    Attributes:
        levels: Pending entries, oldest first.
        current: The entry being played, if any.
        waiting: Wait records keyed by submitter id.
        extensions: Extension documents keyed by extension name, each a
            mapping with ``version`` and ``data``.
    """

    levels: list[QueueEntry] = field(default_factory=list)
    current: QueueEntry | None = None
    waiting: dict[str, WaitRecord] = field(default_factory=dict)
    extensions: dict[str, Mapping[str, Any]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.levels)

    def all_entries(self) -> Iterator[QueueEntry]:
        """Iterate the current entry (if any) followed by pending entries."""
        if self.current is not None:
            yield self.current
        yield from self.levels

    def find_pending(self, submitter: Submitter) -> QueueEntry | None:
        """Find the first pending entry of a submitter."""
        return next((e for e in self.levels if e.belongs_to(submitter)), None)

    def index_of(self, entry: QueueEntry) -> int:
        """Index of an entry in the pending list by entry id, -1 if absent."""
        return next(
            (i for i, e in enumerate(self.levels) if e.entry_id == entry.entry_id),
            -1,
        )

    def is_current(self, submitter: Submitter) -> bool:
        """Check if the current entry belongs to a submitter."""
        return self.current is not None and self.current.belongs_to(submitter)

    def copy(self) -> QueueState:
        """Shallow copy; entries and records are immutable."""
        return QueueState(
            levels=list(self.levels),
            current=self.current,
            waiting=dict(self.waiting),
            extensions=dict(self.extensions),
        )
