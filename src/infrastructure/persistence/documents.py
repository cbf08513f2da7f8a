"""Schemas of the stored documents.

Each stored format is described by a pydantic model. Version 1 is the
legacy multi-file layout, version 2 the first ``queue.json`` keyed by
login names, and version 3 the current ``queue.json`` keyed by stable
user ids. JSON keys are camelCase as written by every previous release.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from src.domain.errors.persistence import IncompatibleVersionError, PersistenceCorruptionError

_VERSION_PATTERN = re.compile(r"^(\d+)(\.|$)")


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LevelV1(BaseModel):
    """Entry of the legacy ``queso.save`` list."""

    code: str
    submitter: str
    username: str | None = None
    current_level: bool = False


class WaitingV2(_Document):
    """Wait record as stored since version 2."""

    wait_time: int = Field(ge=0)
    weight_min: int | None = Field(default=None, ge=0)
    weight_msec: int | None = Field(default=None, ge=0, lt=60_000)
    last_online_time: datetime

    @model_validator(mode="after")
    def _default_weight(self) -> WaitingV2:
        if self.weight_min is None:
            self.weight_min = self.wait_time
        if self.weight_msec is None:
            self.weight_msec = 0
        return self


class EntryV2(_Document):
    code: str | None = None
    type: str | None = None
    data: Any = None


class SubmittedEntryV2(EntryV2):
    submitter: str
    username: str


class ExtensionData(_Document):
    version: str
    data: Any = None


class QueueV2(_Document):
    version: str
    current_level: SubmittedEntryV2 | None = None
    queue: list[SubmittedEntryV2] = Field(default_factory=list)
    waiting: dict[str, WaitingV2] = Field(default_factory=dict)
    extensions: dict[str, ExtensionData] = Field(default_factory=dict)


class SubmitterV3(_Document):
    id: str
    login: str
    display_name: str


class EntryV3(_Document):
    id: str
    code: str
    type: str | None = None
    data: Any = None
    submitter: SubmitterV3
    submitted_at: datetime


class WaitingV3(WaitingV2):
    login: str | None = None


class QueueV3(_Document):
    version: int
    current_level: EntryV3 | None = None
    queue: list[EntryV3] = Field(default_factory=list)
    waiting: dict[str, WaitingV3] = Field(default_factory=dict)
    extensions: dict[str, ExtensionData] = Field(default_factory=dict)


class CustomCodesV2(_Document):
    version: str
    data: dict[str, EntryV2] = Field(default_factory=dict)


def declared_version(
    path: Path,
    document: Any,
    supported_min: int,
    supported_max: int,
) -> int:
    """Read the major version a stored document declares.

    Versions are stored as an integer (``3``) or as a string whose major
    part is the version (``"2.2"``).

    Raises:
        PersistenceCorruptionError: If the document has no usable version.
        IncompatibleVersionError: If the version is outside the range.
    """
    if not isinstance(document, dict) or "version" not in document:
        raise PersistenceCorruptionError(str(path), "no version tag")
    raw = document["version"]
    if isinstance(raw, bool):
        raise PersistenceCorruptionError(str(path), f"invalid version tag {raw!r}")
    if isinstance(raw, int):
        major = raw
    elif isinstance(raw, str) and (match := _VERSION_PATTERN.match(raw)):
        major = int(match.group(1))
    else:
        raise PersistenceCorruptionError(str(path), f"invalid version tag {raw!r}")
    if not supported_min <= major <= supported_max:
        raise IncompatibleVersionError(str(path), raw, supported_min, supported_max)
    return major


def parse_document(path: Path, model: type[_Document], document: Any) -> Any:
    """Validate a decoded document against its schema.

    Raises:
        PersistenceCorruptionError: Naming the first invalid field.
    """
    try:
        return model.model_validate(document)
    except ValidationError as exc:
        error = exc.errors()[0]
        location = ".".join(str(part) for part in error["loc"]) or "document"
        raise PersistenceCorruptionError(str(path), f"{location}: {error['msg']}") from exc
