"""Application ports - Abstract interfaces for infrastructure adapters.

This module defines the contracts that infrastructure adapters must implement.
Ports enable dependency inversion and make the application layer testable.

Available ports:
- ChatRosterProtocol: Live chat roster and login directory
- PresenceViewProtocol: Merged online presence view
- QueueStateRepositoryProtocol: Durable queue state storage
- CustomCodeRepositoryProtocol: Custom code extension storage
- TimeAuthorityProtocol: Wall clock and monotonic time
"""

from src.application.ports.chat_roster import ChatRosterProtocol, RosterSourceProtocol
from src.application.ports.presence_view import PresenceViewProtocol
from src.application.ports.queue_state_repository import (
    CustomCodeRepositoryProtocol,
    QueueStateRepositoryProtocol,
)
from src.application.ports.time_authority import TimeAuthorityProtocol

__all__: list[str] = [
    "ChatRosterProtocol",
    "RosterSourceProtocol",
    "CustomCodeRepositoryProtocol",
    "PresenceViewProtocol",
    "QueueStateRepositoryProtocol",
    "TimeAuthorityProtocol",
]
