"""Queue entry domain models.

This module defines the submitted levels held by the queue:
- Submitter: Stable identity of the chatter that submitted a level
- QueueEntry: A submitted level with its canonical code

Entries are immutable. Replacing a level code creates a new entry that
keeps the entry id, submitter and submission time.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any
from uuid import uuid4

SMM2_ENTRY_TYPE = "smm2"
CUSTOM_LEVEL_ENTRY_TYPE = "customlevel"


@dataclass(frozen=True)
class Submitter:
    """A chat participant.

    Attributes:
        id: Stable platform user id.
        login: Login name (lower case, unique).
        display_name: Name shown in chat, may be localized.
    """

    id: str
    login: str
    display_name: str

    def matches_name(self, name: str) -> bool:
        """Check a display name or login name, ignoring a leading ``@``."""
        name = name.strip()
        if name.startswith("@"):
            name = name[1:]
        return name in (self.display_name, self.login) or (
            name.lower() == self.login
        )


@dataclass(frozen=True)
class QueueEntry:
    """A level in the queue.

    Attributes:
        code: Canonical level code (``XXX-XXX-XXX``) or ``custom:<uuid>``.
        submitter: Who submitted the level.
        submitted_at: When the level was submitted (timezone-aware).
        entry_id: Unique identifier of this submission.
        type: Entry type name used to resolve and display the code.
        data: Optional extension-specific payload.
    """

    code: str
    submitter: Submitter
    submitted_at: datetime
    entry_id: str = field(default_factory=lambda: str(uuid4()))
    type: str | None = SMM2_ENTRY_TYPE
    data: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        """Validate entry fields after initialization.

        Raises:
            ValueError: If submitted_at is naive.
        """
        if self.submitted_at.tzinfo is None:
            raise ValueError("submitted_at must be timezone-aware (UTC)")

    def with_code(
        self,
        code: str,
        type: str | None,
        data: Mapping[str, Any] | None = None,
    ) -> QueueEntry:
        """Return a copy of this entry with a different level."""
        return replace(self, code=code, type=type, data=data)

    def belongs_to(self, submitter: Submitter) -> bool:
        """Check if this entry was submitted by the given identity."""
        return self.submitter.id == submitter.id
