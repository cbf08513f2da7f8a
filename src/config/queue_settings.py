"""Queue settings.

Settings are read once from a JSON file and validated into an immutable
``QueueSettings`` model. Unknown or ill-typed keys are rejected with a
``SettingsError`` naming the offending key.

Durations accept a number of seconds or a string such as ``"5 minutes"``,
``"30s"`` or ``"1h"``.

Environment Variables:
- LEVEL_QUEUE_SETTINGS: Path of the settings file (default: settings.json)
"""

from __future__ import annotations

import json
import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator

from src.domain.exceptions import QueueEngineError
from src.domain.models.selection import SelectionPolicy

SETTINGS_PATH_ENV = "LEVEL_QUEUE_SETTINGS"
DEFAULT_SETTINGS_PATH = "settings.json"

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]*)\s*$")
_DURATION_UNITS: dict[str, float] = {
    "": 1,
    "ms": 0.001,
    "millisecond": 0.001,
    "milliseconds": 0.001,
    "s": 1,
    "sec": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hour": 3600,
    "hours": 3600,
}


class SettingsError(QueueEngineError):
    """Raised when the settings file is missing, malformed or invalid.

    Attributes:
        key: The offending settings key, if one can be named.
    """

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


def parse_duration(value: Any) -> timedelta | None:
    """Parse a duration given in seconds or as a string with a unit.

    Raises:
        ValueError: If the value is not a recognizable duration.
    """
    if value is None or isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError("expected a duration, got a boolean")
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        match = _DURATION_PATTERN.match(value)
        if match is None or match.group(2).lower() not in _DURATION_UNITS:
            raise ValueError(f"invalid duration {value!r}")
        seconds = float(match.group(1)) * _DURATION_UNITS[match.group(2).lower()]
    else:
        raise ValueError(f"invalid duration {value!r}")
    if seconds < 0:
        raise ValueError("duration must not be negative")
    return timedelta(seconds=seconds)


Duration = Annotated[timedelta, BeforeValidator(parse_duration)]


class QueueSettings(BaseModel):
    """Validated queue configuration.

    Attributes:
        channel: Broadcaster login; the broadcaster may submit without limit.
        start_open: Whether the queue accepts submissions at startup.
        enable_absolute_position: Also report positions ignoring presence.
        custom_codes_enabled: Allow custom code aliases.
        romhacks_enabled: Allow the ROM hack sentinel code.
        uncleared_enabled: Allow the uncleared level sentinel code.
        max_size: Queue capacity.
        level_timeout: How long a level may be played, None for no limit.
        level_selection: Policy names applied round-robin by ``select()``.
        message_cooldown: Minimum time between list messages.
        data_id_course_threshold: Highest allowed course data id.
        data_id_maker_threshold: Highest allowed maker data id.
        pretty_save_files: Indent saved JSON documents.
        subscriber_weight_multiplier: Wait weight per minute for subscribers.
        show_maker_code: Mark maker codes when displaying levels.
        resolvers: Names of the level resolvers to use, None for all.
        data_directory: Directory holding the save files.
        presence_grace_period: How long a chatter counts as online.
        presence_timeout: Upper bound on one roster fetch.
        roster_cache_ttl: How long a fetched roster is reused.
        wait_tick_interval: Period of the wait time ledger tick.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    channel: str
    start_open: bool = False
    enable_absolute_position: bool = False
    custom_codes_enabled: bool = False
    romhacks_enabled: bool = False
    uncleared_enabled: bool = False
    max_size: int = Field(default=100, ge=1)
    level_timeout: Duration | None = None
    level_selection: list[str] = Field(default_factory=lambda: ["next"], min_length=1)
    message_cooldown: Duration | None = None
    data_id_course_threshold: int | None = Field(default=None, ge=0)
    data_id_maker_threshold: int | None = Field(default=None, ge=0)
    pretty_save_files: bool = False
    subscriber_weight_multiplier: float | None = Field(default=None, ge=1.0)
    show_maker_code: bool = True
    resolvers: list[str] | None = None
    data_directory: Path = Path("data")
    presence_grace_period: Duration = timedelta(minutes=5)
    presence_timeout: Duration = timedelta(seconds=10)
    roster_cache_ttl: Duration = timedelta(seconds=60)
    wait_tick_interval: Duration = timedelta(seconds=60)

    @field_validator("channel")
    @classmethod
    def _channel_login(cls, value: str) -> str:
        login = value.strip().lower()
        if not login:
            raise ValueError("channel must not be empty")
        return login

    @field_validator("level_selection")
    @classmethod
    def _known_policies(cls, value: list[str]) -> list[str]:
        known = {policy.value for policy in SelectionPolicy}
        for name in value:
            if name.strip().lower() not in known:
                raise ValueError(f"unknown selection policy {name!r}")
        return [name.strip().lower() for name in value]

    @property
    def selection_policies(self) -> list[SelectionPolicy]:
        return [SelectionPolicy.parse(name) for name in self.level_selection]


def settings_from_mapping(data: Any) -> QueueSettings:
    """Validate a decoded settings mapping.

    Raises:
        SettingsError: Naming the first offending key.
    """
    if not isinstance(data, dict):
        raise SettingsError("Settings must be a JSON object")
    try:
        return QueueSettings.model_validate(data)
    except ValidationError as exc:
        error = exc.errors()[0]
        key = ".".join(str(part) for part in error["loc"]) or None
        if error["type"] == "extra_forbidden":
            message = f"Unknown setting {key!r}"
        else:
            message = f"Invalid setting {key!r}: {error['msg']}"
        raise SettingsError(message, key=key) from exc


def settings_path() -> Path:
    """Settings path from the environment, or the default."""
    return Path(os.environ.get(SETTINGS_PATH_ENV, DEFAULT_SETTINGS_PATH))


def load_settings(path: Path | str | None = None) -> QueueSettings:
    """Load and validate the settings file.

    Args:
        path: Settings file, defaults to ``settings_path()``.

    Raises:
        SettingsError: If the file cannot be read or is invalid.
    """
    path = Path(path) if path is not None else settings_path()
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SettingsError(f"Cannot read settings file {path}: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SettingsError(f"Settings file {path} is not valid JSON: {exc}") from exc
    return settings_from_mapping(data)
