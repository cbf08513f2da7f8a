"""Queue save file formats and their upgrades.

Version 1: legacy files next to the data directory
    ``queso.save``           list of levels, the current one flagged
    ``waitingUsers.txt``     JSON list of login names
    ``userWaitTime.txt``     JSON list of wait minutes, same length
    ``userOnlineTime.txt``   optional JSON list of ISO timestamps

Version 2: ``data/queue.json`` with a ``"2.x"`` version string, entries
and wait records keyed by login name.

Version 3: ``data/queue.json`` with integer version 3, entries carrying
a stable user id, an entry id and the submission time; wait records
keyed by user id.

Upgrading from version 2 needs the user id of every login name. Logins
the chat roster can not resolve are written to a lost levels file by an
upgrade hook, so they only appear on disk once the upgraded queue has
been saved and verified.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog
from pydantic import TypeAdapter, ValidationError

from src.application.ports.chat_roster import ChatRosterProtocol
from src.application.ports.time_authority import TimeAuthorityProtocol
from src.domain.errors.persistence import PersistenceCorruptionError
from src.domain.models.custom_level import LEGACY_CUSTOM_CODES
from src.domain.models.queue_entry import (
    CUSTOM_LEVEL_ENTRY_TYPE,
    SMM2_ENTRY_TYPE,
    QueueEntry,
    Submitter,
)
from src.domain.models.queue_state import QueueState
from src.domain.models.wait_record import WaitRecord
from src.infrastructure.persistence.documents import (
    EntryV3,
    ExtensionData,
    LevelV1,
    QueueV2,
    QueueV3,
    SubmittedEntryV2,
    SubmitterV3,
    WaitingV2,
    WaitingV3,
    declared_version,
    parse_document,
)
from src.infrastructure.persistence.json_files import read_json, write_json_atomic_async
from src.infrastructure.persistence.versioning import SchemaVersion, UpgradeResult, VersionChain

logger = structlog.get_logger(__name__)

QUEUE_FILE_NAME = "queue.json"
QUEUE_V2_VERSION = "2.2"
QUEUE_VERSION = 3
SUPPORTED_FILE_VERSIONS = (2, 3)

LEGACY_QUEUE_FILE = "queso.save"
LEGACY_WAITING_USERS_FILE = "waitingUsers.txt"
LEGACY_WAIT_TIME_FILE = "userWaitTime.txt"
LEGACY_ONLINE_TIME_FILE = "userOnlineTime.txt"
LEGACY_FILES = (
    LEGACY_QUEUE_FILE,
    LEGACY_ONLINE_TIME_FILE,
    LEGACY_WAIT_TIME_FILE,
    LEGACY_WAITING_USERS_FILE,
)

_LEVELS_V1 = TypeAdapter(list[LevelV1])
_NAMES_V1 = TypeAdapter(list[str])
_WAIT_TIMES_V1 = TypeAdapter(list[int])
_ONLINE_TIMES_V1 = TypeAdapter(list[datetime])


def _aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _validate_legacy(path: Path, adapter: TypeAdapter[Any], document: Any) -> Any:
    try:
        return adapter.validate_python(document)
    except ValidationError as exc:
        error = exc.errors()[0]
        location = ".".join(str(part) for part in error["loc"]) or "document"
        raise PersistenceCorruptionError(str(path), f"{location}: {error['msg']}") from exc


def state_to_document(state: QueueState) -> dict[str, Any]:
    """Serialize queue state into the newest document form."""
    document = QueueV3(
        version=QUEUE_VERSION,
        current_level=_entry_to_v3(state.current) if state.current else None,
        queue=[_entry_to_v3(entry) for entry in state.levels],
        waiting={
            submitter_id: WaitingV3(
                wait_time=record.wait_time,
                weight_min=record.weight_min,
                weight_msec=record.weight_msec,
                last_online_time=record.last_online_time,
            )
            for submitter_id, record in state.waiting.items()
        },
        extensions={
            name: ExtensionData.model_validate(extension)
            for name, extension in state.extensions.items()
        },
    )
    return document.model_dump(mode="json", by_alias=True)


def document_to_state(document: QueueV3) -> QueueState:
    """Build queue state from a validated newest document."""
    return QueueState(
        levels=[_entry_from_v3(entry) for entry in document.queue],
        current=_entry_from_v3(document.current_level) if document.current_level else None,
        waiting={
            submitter_id: WaitRecord(
                wait_time=waiting.wait_time,
                weight_min=waiting.weight_min or 0,
                weight_msec=waiting.weight_msec or 0,
                last_online_time=_aware(waiting.last_online_time),
            )
            for submitter_id, waiting in document.waiting.items()
        },
        extensions={
            name: extension.model_dump(mode="json") for name, extension in document.extensions.items()
        },
    )


def _entry_to_v3(entry: QueueEntry) -> EntryV3:
    return EntryV3(
        id=entry.entry_id,
        code=entry.code,
        type=entry.type,
        data=dict(entry.data) if entry.data is not None else None,
        submitter=SubmitterV3(
            id=entry.submitter.id,
            login=entry.submitter.login,
            display_name=entry.submitter.display_name,
        ),
        submitted_at=entry.submitted_at,
    )


def _entry_from_v3(entry: EntryV3) -> QueueEntry:
    return QueueEntry(
        code=entry.code,
        type=entry.type,
        data=entry.data,
        submitter=Submitter(
            id=entry.submitter.id,
            login=entry.submitter.login,
            display_name=entry.submitter.display_name,
        ),
        submitted_at=_aware(entry.submitted_at),
        entry_id=entry.id,
    )


def _legacy_level(entry: SubmittedEntryV2) -> tuple[str, str | None]:
    assert entry.code is not None
    custom = LEGACY_CUSTOM_CODES.get(entry.code.upper())
    if custom is not None and entry.type in (None, SMM2_ENTRY_TYPE):
        return custom.code, CUSTOM_LEVEL_ENTRY_TYPE
    return entry.code, entry.type or SMM2_ENTRY_TYPE


@dataclass(frozen=True)
class LegacyQueueV1:
    """Contents of the legacy multi-file layout."""

    levels: list[LevelV1]
    current: LevelV1 | None
    waiting: dict[str, WaitingV2]
    files: list[Path]


class QueueDocuments:
    """Loaders and upgrades for every queue save file version.

    Args:
        data_directory: Directory holding ``queue.json``.
        legacy_directory: Directory holding the version 1 files.
        roster: Resolves login names to user ids during upgrades.
        time_authority: Clock for upgrade timestamps.
    """

    def __init__(
        self,
        data_directory: Path,
        legacy_directory: Path,
        roster: ChatRosterProtocol,
        time_authority: TimeAuthorityProtocol,
        *,
        pretty: bool = False,
    ) -> None:
        self._data_directory = data_directory
        self._legacy_directory = legacy_directory
        self._roster = roster
        self._time = time_authority
        self._pretty = pretty

    @property
    def path(self) -> Path:
        return self._data_directory / QUEUE_FILE_NAME

    def chain(self) -> VersionChain[QueueState]:
        return VersionChain(
            "queue",
            [
                SchemaVersion(1, self.load_v1),
                SchemaVersion(2, self.load_v2, self.upgrade_v1_to_v2),
                SchemaVersion(3, self.load_v3, self.upgrade_v2_to_v3),
            ],
            path=str(self.path),
        )

    # ------------------------------------------------------------------
    # Version 3
    # ------------------------------------------------------------------

    async def load_v3(self) -> QueueState | None:
        document = await self._read_queue_file()
        if document is None:
            return None
        if declared_version(self.path, document, *SUPPORTED_FILE_VERSIONS) != 3:
            return None
        return document_to_state(parse_document(self.path, QueueV3, document))

    async def upgrade_v2_to_v3(self, queue: QueueV2) -> UpgradeResult[QueueState]:
        """Key everything by user id, resolving logins through the roster."""
        log = logger.bind(path=str(self.path))
        now = self._time.utcnow()

        entries = ([queue.current_level] if queue.current_level else []) + queue.queue
        logins = sorted(
            {entry.username.lower() for entry in entries} | {name.lower() for name in queue.waiting}
        )
        users = await self._roster.get_users_by_login(logins) if logins else {}

        lost: list[dict[str, Any]] = []

        def convert(entry: SubmittedEntryV2, current: bool) -> QueueEntry | None:
            user = users.get(entry.username.lower())
            if user is None or entry.code is None:
                lost.append({**entry.model_dump(mode="json", by_alias=True), "current": current})
                return None
            code, entry_type = _legacy_level(entry)
            return QueueEntry(
                code=code,
                type=entry_type,
                data=entry.data if entry_type != CUSTOM_LEVEL_ENTRY_TYPE else None,
                submitter=Submitter(
                    id=user.id,
                    login=user.login,
                    display_name=entry.submitter or user.display_name,
                ),
                submitted_at=now,
            )

        current = convert(queue.current_level, True) if queue.current_level else None
        levels = [
            converted
            for converted in (convert(entry, False) for entry in queue.queue)
            if converted is not None
        ]

        waiting: dict[str, WaitRecord] = {}
        dropped_waiting = 0
        for login, record in queue.waiting.items():
            user = users.get(login.lower())
            if user is None:
                dropped_waiting += 1
                continue
            waiting[user.id] = WaitRecord(
                wait_time=record.wait_time,
                weight_min=record.weight_min or 0,
                weight_msec=record.weight_msec or 0,
                last_online_time=_aware(record.last_online_time),
            )
        if dropped_waiting:
            log.warning("wait_records_dropped", count=dropped_waiting)

        state = QueueState(
            levels=levels,
            current=current,
            waiting=waiting,
            extensions={
                name: extension.model_dump(mode="json")
                for name, extension in queue.extensions.items()
            },
        )
        if not lost:
            return UpgradeResult(state)

        lost_path = self._data_directory / f"lost-levels-{now.strftime('%Y%m%dT%H%M%SZ')}.json"
        log.warning(
            "levels_lost_during_upgrade",
            count=len(lost),
            lost_levels_path=str(lost_path),
            message=f"{len(lost)} level(s) could not be converted and will be written to {lost_path}",
        )

        async def write_lost_levels() -> None:
            await write_json_atomic_async(
                lost_path,
                {"version": QUEUE_V2_VERSION, "levels": lost},
                pretty=self._pretty,
            )
            log.warning("lost_levels_written", count=len(lost), lost_levels_path=str(lost_path))

        return UpgradeResult(state, (write_lost_levels,))

    # ------------------------------------------------------------------
    # Version 2
    # ------------------------------------------------------------------

    async def load_v2(self) -> QueueV2 | None:
        document = await self._read_queue_file()
        if document is None:
            return None
        if declared_version(self.path, document, *SUPPORTED_FILE_VERSIONS) != 2:
            return None
        return parse_document(self.path, QueueV2, document)

    async def upgrade_v1_to_v2(self, legacy: LegacyQueueV1) -> UpgradeResult[QueueV2]:
        """Merge the legacy files into one document."""
        now = self._time.utcnow()

        def upgrade(level: LevelV1) -> SubmittedEntryV2:
            return SubmittedEntryV2(
                code=level.code,
                type=None,
                submitter=level.submitter,
                username=level.username or level.submitter.lower(),
            )

        queue = [upgrade(level) for level in legacy.levels]
        waiting = dict(legacy.waiting)
        # the current level does not have a wait time
        for entry in queue:
            if entry.username not in waiting:
                waiting[entry.username] = WaitingV2(wait_time=1, last_online_time=now)

        document = QueueV2(
            version=QUEUE_V2_VERSION,
            current_level=upgrade(legacy.current) if legacy.current else None,
            queue=queue,
            waiting=waiting,
        )
        files = list(legacy.files)

        async def remove_legacy_files() -> None:
            for file in files:
                try:
                    await asyncio.to_thread(file.unlink, missing_ok=True)
                except OSError as exc:
                    logger.warning("legacy_file_not_deleted", path=str(file), error=str(exc))
                else:
                    logger.info("legacy_file_deleted", path=str(file))

        return UpgradeResult(document, (remove_legacy_files,))

    # ------------------------------------------------------------------
    # Version 1
    # ------------------------------------------------------------------

    async def load_v1(self) -> LegacyQueueV1 | None:
        return await asyncio.to_thread(self._load_v1_sync)

    def _load_v1_sync(self) -> LegacyQueueV1 | None:
        files = [self._legacy_directory / name for name in LEGACY_FILES]
        existing = [file for file in files if file.exists()]
        if not existing:
            return None
        log = logger.bind(legacy_directory=str(self._legacy_directory))

        queue_path = self._legacy_directory / LEGACY_QUEUE_FILE
        levels: list[LevelV1] = _validate_legacy(
            queue_path, _LEVELS_V1, read_json(queue_path, default=[])
        )
        if any(level.username is None for level in levels):
            log.warning(
                "legacy_usernames_missing",
                path=str(queue_path),
                message=(
                    "Assuming that usernames are lowercase display names, which does "
                    "not work with localized display names. To be safe, clear the queue."
                ),
            )

        current: LevelV1 | None = None
        flagged = [index for index, level in enumerate(levels) if level.current_level]
        if len(flagged) == 1:
            current = levels.pop(flagged[0])
        elif not flagged:
            log.warning("legacy_current_level_missing", path=str(queue_path))
        else:
            log.warning(
                "legacy_current_level_ambiguous",
                path=str(queue_path),
                flagged=len(flagged),
            )

        users_path = self._legacy_directory / LEGACY_WAITING_USERS_FILE
        times_path = self._legacy_directory / LEGACY_WAIT_TIME_FILE
        online_path = self._legacy_directory / LEGACY_ONLINE_TIME_FILE
        users: list[str] = _validate_legacy(users_path, _NAMES_V1, read_json(users_path, default=[]))
        wait_times: list[int] = _validate_legacy(
            times_path, _WAIT_TIMES_V1, read_json(times_path, default=[])
        )
        if len(users) != len(wait_times):
            raise PersistenceCorruptionError(
                str(times_path),
                f"list length mismatch with {users_path} ({len(wait_times)} != {len(users)})",
            )
        online_document = read_json(online_path, default=None)
        online_times: list[datetime] | None = None
        if online_document is not None:
            online_times = _validate_legacy(online_path, _ONLINE_TIMES_V1, online_document)
            if len(online_times) != len(users):
                raise PersistenceCorruptionError(
                    str(online_path),
                    f"list length mismatch with {users_path} ({len(online_times)} != {len(users)})",
                )

        now = self._time.utcnow()
        waiting = {
            username: WaitingV2(
                wait_time=wait_time,
                weight_min=wait_time,
                weight_msec=0,
                last_online_time=online_times[index] if online_times else now,
            )
            for index, (username, wait_time) in enumerate(zip(users, wait_times))
        }
        log.info("legacy_queue_loaded", levels=len(levels), waiting=len(waiting))
        return LegacyQueueV1(levels=levels, current=current, waiting=waiting, files=existing)

    async def _read_queue_file(self) -> Any:
        """Decoded queue file, None if there is no file."""

        def read() -> Any:
            if not self.path.exists():
                return None
            document = read_json(self.path)
            if document is None:
                raise PersistenceCorruptionError(str(self.path), "document is null")
            return document

        return await asyncio.to_thread(read)
