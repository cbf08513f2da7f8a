"""Custom code registry.

Custom codes are broadcaster-defined names for level codes, for example
``!add kaizo1`` instead of ``!add D36-010-5YF``. Lookups ignore case
but the name is kept as it was written.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class CustomCode:
    """A named alias for a level.

    Attributes:
        name: The custom code as written by the broadcaster.
        code: The level code it stands for.
        type: Entry type of the level code.
    """

    name: str
    code: str
    type: str | None


class CustomCodes:
    """Case-insensitive mapping of custom code names to levels."""

    def __init__(self) -> None:
        self._codes: dict[str, CustomCode] = {}

    def __len__(self) -> int:
        return len(self._codes)

    def has(self, name: str) -> bool:
        return name.strip().upper() in self._codes

    def get(self, name: str) -> CustomCode | None:
        return self._codes.get(name.strip().upper())

    def list_names(self) -> list[str]:
        return [custom.name for custom in self._codes.values()]

    def set(self, name: str, code: str, type: str | None) -> CustomCode:
        name = name.strip()
        custom = CustomCode(name=name, code=code, type=type)
        self._codes[name.upper()] = custom
        return custom

    def delete(self, name: str) -> bool:
        return self._codes.pop(name.strip().upper(), None) is not None

    def replace_all(self, data: Mapping[str, Mapping[str, object]]) -> None:
        """Replace every code from a persisted mapping of name to entry."""
        codes: dict[str, CustomCode] = {}
        for name, entry in data.items():
            code = entry.get("code")
            if not isinstance(code, str):
                raise ValueError(f"custom code {name!r} has no level code")
            entry_type = entry.get("type")
            codes[name.upper()] = CustomCode(
                name=name,
                code=code,
                type=entry_type if isinstance(entry_type, str) else None,
            )
        self._codes = codes

    def to_mapping(self) -> dict[str, dict[str, str | None]]:
        """Persisted form: name to ``{"code", "type"}``."""
        return {
            custom.name: {"code": custom.code, "type": custom.type}
            for custom in self._codes.values()
        }
