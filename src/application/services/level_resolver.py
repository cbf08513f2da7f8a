"""Level resolver.

Turns the text a chatter submitted into a level the queue can store,
and turns stored levels back into text for chat. Resolvers are tried
in order:

1. ``customcode``: broadcaster-defined aliases for level codes
2. ``customlevel``: ROM hack and uncleared level placeholders
3. ``smm2``: Super Mario Maker 2 course and maker codes

A strict code match anywhere in the chain wins over a lenient match, so
``"my level is D36-010-5YF"`` is accepted but an exact alias is never
mistaken for a code found inside it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from src.config.queue_settings import QueueSettings
from src.domain.models.custom_codes import CustomCodes
from src.domain.models.custom_level import (
    CUSTOM_CODE_PREFIX,
    ROMHACK_LEVEL,
    UNCLEARED_LEVEL,
    CustomLevel,
)
from src.domain.models.queue_entry import CUSTOM_LEVEL_ENTRY_TYPE, SMM2_ENTRY_TYPE, QueueEntry
from src.domain.services.level_code_codec import validate

CUSTOM_CODE_RESOLVER = "customcode"
CUSTOM_LEVEL_RESOLVER = "customlevel"
SMM2_RESOLVER = "smm2"
ALL_RESOLVERS = (CUSTOM_CODE_RESOLVER, CUSTOM_LEVEL_RESOLVER, SMM2_RESOLVER)

MAKER_CODE_SUFFIX = " (maker code)"


@dataclass(frozen=True)
class ResolvedLevel:
    """A level ready to be queued."""

    code: str
    type: str
    data: Mapping[str, Any] | None = None


class LevelResolver:
    """Resolves submitted text to levels and displays stored levels."""

    def __init__(self, settings: QueueSettings, custom_codes: CustomCodes | None = None) -> None:
        self._settings = settings
        self._custom_codes = custom_codes if custom_codes is not None else CustomCodes()
        enabled = settings.resolvers if settings.resolvers is not None else ALL_RESOLVERS
        self._enabled = {name.lower() for name in enabled}

    @property
    def custom_codes(self) -> CustomCodes:
        return self._custom_codes

    def custom_levels(self) -> list[CustomLevel]:
        """Custom level types currently accepted."""
        if CUSTOM_LEVEL_RESOLVER not in self._enabled:
            return []
        levels = []
        if self._settings.romhacks_enabled:
            levels.append(ROMHACK_LEVEL)
        if self._settings.uncleared_enabled:
            levels.append(UNCLEARED_LEVEL)
        return levels

    def resolve(self, text: str) -> ResolvedLevel | None:
        """Resolve submitted text, None if nothing accepts it."""
        text = text.strip()
        if not text:
            return None
        return self._resolve(text, strict=True) or self._resolve(text, strict=False)

    def _resolve(self, text: str, *, strict: bool) -> ResolvedLevel | None:
        if (
            strict
            and self._settings.custom_codes_enabled
            and CUSTOM_CODE_RESOLVER in self._enabled
        ):
            custom = self._custom_codes.get(text)
            if custom is not None:
                return self._resolve_stored(custom.code, custom.type)

        if strict:
            for level in self.custom_levels():
                if any(text.upper() == code.upper() for code in level.codes):
                    return ResolvedLevel(code=level.code, type=CUSTOM_LEVEL_ENTRY_TYPE)

        if SMM2_RESOLVER in self._enabled:
            result = validate(
                text,
                self._settings.data_id_course_threshold,
                self._settings.data_id_maker_threshold,
                strict=strict,
            )
            if result.valid:
                return ResolvedLevel(code=result.code, type=SMM2_ENTRY_TYPE)
        return None

    def _resolve_stored(self, code: str, entry_type: str | None) -> ResolvedLevel | None:
        if entry_type == CUSTOM_LEVEL_ENTRY_TYPE or code.startswith(CUSTOM_CODE_PREFIX):
            return next(
                (
                    ResolvedLevel(code=level.code, type=CUSTOM_LEVEL_ENTRY_TYPE)
                    for level in self.custom_levels()
                    if level.code == code
                ),
                None,
            )
        result = validate(
            code,
            self._settings.data_id_course_threshold,
            self._settings.data_id_maker_threshold,
        )
        if result.valid:
            return ResolvedLevel(code=result.code, type=SMM2_ENTRY_TYPE)
        return None

    def display(self, entry: QueueEntry) -> str:
        """Text used for an entry in chat."""
        if entry.type == CUSTOM_LEVEL_ENTRY_TYPE:
            for level in (ROMHACK_LEVEL, UNCLEARED_LEVEL):
                if level.code == entry.code:
                    return level.display
            return entry.code
        if entry.type in (None, SMM2_ENTRY_TYPE) and self._settings.show_maker_code:
            if validate(entry.code).maker_code:
                return entry.code + MAKER_CODE_SUFFIX
        return entry.code
