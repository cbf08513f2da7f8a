"""JSON file repository for queue state.

Loads ``queue.json`` through the queue version chain and writes
snapshots of the state through a serialized writer. Existing files
are never touched while loading: an upgraded state is written, read
back, and only then are upgrade hooks such as deleting legacy files
allowed to run.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from src.application.ports.chat_roster import ChatRosterProtocol
from src.application.ports.time_authority import TimeAuthorityProtocol
from src.domain.models.queue_state import QueueState
from src.infrastructure.persistence.queue_documents import QueueDocuments, state_to_document
from src.infrastructure.persistence.versioning import commit_load_result
from src.infrastructure.persistence.writer import DocumentWriter

logger = structlog.get_logger(__name__)


class JsonQueueStateRepository:
    """Queue state stored as a versioned JSON document.

    Args:
        data_directory: Directory holding ``queue.json``.
        roster: Resolves login names when upgrading version 2 files.
        time_authority: Clock for upgrade timestamps.
        legacy_directory: Directory holding version 1 files, defaults
            to the parent of the data directory.
        pretty: Indent the written JSON.
    """

    def __init__(
        self,
        data_directory: Path,
        roster: ChatRosterProtocol,
        time_authority: TimeAuthorityProtocol,
        *,
        legacy_directory: Path | None = None,
        pretty: bool = False,
    ) -> None:
        self._documents = QueueDocuments(
            data_directory,
            legacy_directory if legacy_directory is not None else data_directory.parent,
            roster,
            time_authority,
            pretty=pretty,
        )
        self._chain = self._documents.chain()
        self._writer = DocumentWriter(self._documents.path, pretty=pretty)

    @property
    def path(self) -> Path:
        return self._documents.path

    @property
    def has_pending_upgrade(self) -> bool:
        return bool(self._writer.pending_hooks)

    async def load(self, *, persistence_enabled: bool = True) -> QueueState:
        log = logger.bind(path=str(self.path))
        result = await self._chain.load(create=QueueState)
        committed = await commit_load_result(
            result,
            save=self.save,
            verify=self._chain.read_newest,
            persistence_enabled=persistence_enabled,
            name="queue",
        )
        if committed.pending_hooks:
            self._writer.defer_hooks(committed.pending_hooks)
        state = committed.data
        log.info(
            "queue_loaded",
            loaded_version=result.loaded_version,
            levels=len(state.levels),
            has_current=state.current is not None,
            waiting=len(state.waiting),
        )
        return state

    async def load_newest(self) -> QueueState:
        return await self._chain.load_newest()

    async def save(self, state: QueueState) -> bool:
        return await self._writer.write(state_to_document(state))

    def schedule_save(self, state: QueueState) -> None:
        self._writer.submit(state_to_document(state))

    async def flush(self) -> None:
        await self._writer.flush()
