"""Domain models for the level queue.

Contains the value objects and the queue state aggregate. These models
contain no infrastructure dependencies.
"""

from src.domain.models.custom_codes import CustomCode, CustomCodes
from src.domain.models.custom_level import (
    LEGACY_CUSTOM_CODES,
    ROMHACK_LEVEL,
    UNCLEARED_LEVEL,
    CustomLevel,
)
from src.domain.models.queue_entry import (
    CUSTOM_LEVEL_ENTRY_TYPE,
    SMM2_ENTRY_TYPE,
    QueueEntry,
    Submitter,
)
from src.domain.models.queue_state import QueueState
from src.domain.models.selection import (
    OnlineOfflineList,
    PresenceFilter,
    SelectionPolicy,
    SelectionResult,
    SelectionStatus,
    WeightedEntry,
    WeightedList,
    format_chance,
)
from src.domain.models.wait_record import WaitRecord

__all__: list[str] = [
    "CUSTOM_LEVEL_ENTRY_TYPE",
    "LEGACY_CUSTOM_CODES",
    "ROMHACK_LEVEL",
    "SMM2_ENTRY_TYPE",
    "UNCLEARED_LEVEL",
    "CustomCode",
    "CustomCodes",
    "CustomLevel",
    "OnlineOfflineList",
    "PresenceFilter",
    "QueueEntry",
    "QueueState",
    "SelectionPolicy",
    "SelectionResult",
    "SelectionStatus",
    "Submitter",
    "WaitRecord",
    "WeightedEntry",
    "WeightedList",
    "format_chance",
]
