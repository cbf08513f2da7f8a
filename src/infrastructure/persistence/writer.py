"""Serialized JSON document writer.

Every save is snapshotted when it is submitted and written by a
background task. Writes to the same file never overlap: tasks take a
lock in submission order, so the file always ends up with the newest
snapshot. Failed writes are logged and reported as False; the queue
keeps running with its in-memory state.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import structlog

from src.infrastructure.persistence.json_files import write_json_atomic, write_json_atomic_async
from src.infrastructure.persistence.versioning import UpgradeHook, run_hooks

logger = structlog.get_logger(__name__)


class DocumentWriter:
    """Writes snapshots of one document, one at a time."""

    def __init__(self, path: Path, *, pretty: bool = False) -> None:
        self._path = path
        self._pretty = pretty
        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[bool]] = set()
        self._pending_hooks: tuple[UpgradeHook, ...] = ()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def pending_hooks(self) -> tuple[UpgradeHook, ...]:
        return self._pending_hooks

    def defer_hooks(self, hooks: tuple[UpgradeHook, ...]) -> None:
        """Run these hooks once, after the next successful write."""
        self._pending_hooks = self._pending_hooks + hooks

    async def write(self, document: Any) -> bool:
        """Write a snapshot and wait for the result."""
        async with self._lock:
            try:
                await write_json_atomic_async(self._path, document, pretty=self._pretty)
            except OSError as exc:
                self._log_failure(exc)
                return False
            logger.debug("document_saved", path=str(self._path))
        await self._run_pending_hooks()
        return True

    def submit(self, document: Any) -> None:
        """Write a snapshot in the background.

        Without a running event loop the snapshot is written right away.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._write_sync(document)
            return
        task = loop.create_task(self.write(document))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def flush(self) -> None:
        """Wait for every submitted write to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _write_sync(self, document: Any) -> bool:
        try:
            write_json_atomic(self._path, document, pretty=self._pretty)
        except OSError as exc:
            self._log_failure(exc)
            return False
        if self._pending_hooks:
            logger.warning(
                "upgrade_hooks_still_pending",
                path=str(self._path),
                hooks=len(self._pending_hooks),
            )
        return True

    async def _run_pending_hooks(self) -> None:
        if not self._pending_hooks:
            return
        hooks, self._pending_hooks = self._pending_hooks, ()
        try:
            await run_hooks(hooks)
        except Exception:
            logger.exception("upgrade_hook_failed", path=str(self._path))

    def _log_failure(self, exc: OSError) -> None:
        logger.error(
            "save_failed",
            path=str(self._path),
            error=str(exc),
            message=(
                "The queue will keep running, but the state is not persisted "
                "and might be lost on restart."
            ),
        )
