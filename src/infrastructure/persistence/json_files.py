"""JSON file helpers for save files.

Reads turn every way a file can be unreadable into a
``PersistenceCorruptionError``. Writes go to a temporary file in the
same directory that then replaces the target, so a crash mid-write
leaves the previous file intact.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any

from src.domain.errors.persistence import PersistenceCorruptionError

_MISSING = object()


def read_json(path: Path, default: Any = _MISSING) -> Any:
    """Read and decode a JSON file.

    Args:
        path: File to read.
        default: Returned when the file does not exist. Without it a
            missing file is reported as corrupt.

    Raises:
        PersistenceCorruptionError: If the file can not be read or decoded.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        if default is _MISSING:
            raise PersistenceCorruptionError(str(path), "file is missing") from None
        return default
    except (OSError, UnicodeDecodeError) as exc:
        raise PersistenceCorruptionError(str(path), str(exc)) from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise PersistenceCorruptionError(str(path), f"invalid JSON: {exc}") from exc


def encode_json(data: Any, *, pretty: bool = False) -> str:
    return json.dumps(data, indent=2 if pretty else None, ensure_ascii=False)


def write_json_atomic(path: Path, data: Any, *, pretty: bool = False) -> None:
    """Write a JSON file by replacing it with a fully written temporary file.

    Raises:
        OSError: If the directory can not be created or the write fails.
    """
    content = encode_json(data, pretty=pretty)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


async def read_json_async(path: Path, default: Any = _MISSING) -> Any:
    return await asyncio.to_thread(read_json, path, default)


async def write_json_atomic_async(path: Path, data: Any, *, pretty: bool = False) -> None:
    await asyncio.to_thread(write_json_atomic, path, data, pretty=pretty)
