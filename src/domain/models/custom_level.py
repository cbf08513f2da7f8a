"""Custom level domain models.

Custom levels stand in for things that have no level code, such as a
ROM hack or an uncleared level. Each one has a stable UUID derived from
its name and is submitted with one of its alias codes.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid5

# namespace for custom level types known to the queue
CUSTOM_LEVEL_NAMESPACE = UUID("1e511052-e714-49bb-8564-b60915cf7279")
CUSTOM_CODE_PREFIX = "custom:"

ROMHACK_CODE = "R0M-HAK-LVL"
UNCLEARED_CODE = "UNC-LEA-RED"


@dataclass(frozen=True)
class CustomLevel:
    """A custom level type.

    Attributes:
        uuid: Stable identifier.
        codes: Alias codes a chatter may submit.
        display: How the level is shown in chat.
    """

    uuid: UUID
    codes: tuple[str, ...]
    display: str

    @property
    def code(self) -> str:
        """Code stored in queue entries of this type."""
        return f"{CUSTOM_CODE_PREFIX}{self.uuid}"


ROMHACK_LEVEL = CustomLevel(
    uuid=uuid5(CUSTOM_LEVEL_NAMESPACE, "ROMhack"),
    codes=("ROMhack", ROMHACK_CODE),
    display="a ROMhack",
)
UNCLEARED_LEVEL = CustomLevel(
    uuid=uuid5(CUSTOM_LEVEL_NAMESPACE, "Uncleared"),
    codes=("Uncleared", UNCLEARED_CODE),
    display="an uncleared level",
)
LEGACY_CUSTOM_CODES: dict[str, CustomLevel] = {
    ROMHACK_CODE: ROMHACK_LEVEL,
    UNCLEARED_CODE: UNCLEARED_LEVEL,
}
