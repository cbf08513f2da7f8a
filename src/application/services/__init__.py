"""Application services - queue operations built on the application ports.

Available services:
- QueueService: Queue state and every queue operation
- Selector: Sequential, random and weighted selection policies
- WaitTimeLedger: Per-submitter wait time accounting
- OnlinePresenceService: Merged online presence view
- LevelResolver: Level text to queue entry resolution
- CustomCodeService: Custom code management commands
- LevelTimer: Optional per-level countdown
- SystemTimeAuthority: Production clock
"""

from src.application.services.custom_code_service import CustomCodeService
from src.application.services.level_resolver import LevelResolver, ResolvedLevel
from src.application.services.level_timer import LevelTimer, TimerState, TimerStatus
from src.application.services.online_presence_service import OnlinePresenceService
from src.application.services.queue_service import LURKING, NOT_QUEUED, QueueService, ordinal
from src.application.services.selector import (
    POLICY_FILTERS,
    Choice,
    SelectionCycle,
    Selector,
    build_weighted_list,
)
from src.application.services.time_authority_service import SystemTimeAuthority
from src.application.services.wait_time_ledger import WaitTicker, WaitTimeLedger

__all__: list[str] = [
    "LURKING",
    "NOT_QUEUED",
    "POLICY_FILTERS",
    "Choice",
    "CustomCodeService",
    "LevelResolver",
    "LevelTimer",
    "OnlinePresenceService",
    "QueueService",
    "ResolvedLevel",
    "SelectionCycle",
    "Selector",
    "SystemTimeAuthority",
    "TimerState",
    "TimerStatus",
    "WaitTicker",
    "WaitTimeLedger",
    "build_weighted_list",
    "ordinal",
]
