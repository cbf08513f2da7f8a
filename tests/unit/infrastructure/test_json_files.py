"""Unit tests for the JSON file helpers and the document writer."""

import asyncio
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from src.domain.errors.persistence import PersistenceCorruptionError
from src.infrastructure.persistence.json_files import read_json, write_json_atomic
from src.infrastructure.persistence.writer import DocumentWriter


class TestReadJson:
    """Tests for reading save files."""

    def test_reads_document(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.json"
        path.write_text('{"version": 3}', encoding="utf-8")
        assert read_json(path) == {"version": 3}

    def test_missing_file_uses_default(self, tmp_path: Path) -> None:
        assert read_json(tmp_path / "missing.json", default=[]) == []

    def test_missing_file_without_default(self, tmp_path: Path) -> None:
        with pytest.raises(PersistenceCorruptionError, match="file is missing"):
            read_json(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceCorruptionError) as exc_info:
            read_json(path)
        assert exc_info.value.path == str(path)
        assert "invalid JSON" in exc_info.value.reason


class TestWriteJsonAtomic:
    """Tests for atomic writes."""

    def test_creates_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "data" / "extensions" / "doc.json"
        write_json_atomic(path, {"a": 1})
        assert json.loads(path.read_text(encoding="utf-8")) == {"a": 1}

    def test_pretty_output_is_indented(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.json"
        write_json_atomic(path, {"a": 1}, pretty=True)
        assert path.read_text(encoding="utf-8") == '{\n  "a": 1\n}'

    def test_failed_replace_keeps_previous_file(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.json"
        write_json_atomic(path, {"a": 1})
        with patch("src.infrastructure.persistence.json_files.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                write_json_atomic(path, {"a": 2})
        assert json.loads(path.read_text(encoding="utf-8")) == {"a": 1}
        assert [p.name for p in tmp_path.iterdir()] == ["doc.json"]


class TestDocumentWriter:
    """Tests for serialized background writes."""

    async def test_write_returns_true(self, tmp_path: Path) -> None:
        writer = DocumentWriter(tmp_path / "doc.json")
        assert await writer.write({"n": 1})
        assert read_json(writer.path) == {"n": 1}

    async def test_submitted_writes_end_with_newest_snapshot(self, tmp_path: Path) -> None:
        writer = DocumentWriter(tmp_path / "doc.json")
        for n in range(10):
            writer.submit({"n": n})
        await writer.flush()
        assert read_json(writer.path) == {"n": 9}

    async def test_failed_write_returns_false(self, tmp_path: Path) -> None:
        writer = DocumentWriter(tmp_path / "doc.json")
        with patch(
            "src.infrastructure.persistence.writer.write_json_atomic_async",
            side_effect=OSError("read-only file system"),
        ):
            assert not await writer.write({"n": 1})

    async def test_deferred_hooks_run_after_next_write(self, tmp_path: Path) -> None:
        calls: list[str] = []

        async def hook() -> None:
            calls.append("hook")

        writer = DocumentWriter(tmp_path / "doc.json")
        writer.defer_hooks((hook,))
        assert writer.pending_hooks == (hook,)

        await writer.write({"n": 1})
        await writer.write({"n": 2})

        assert calls == ["hook"]
        assert writer.pending_hooks == ()

    async def test_deferred_hooks_wait_for_a_successful_write(self, tmp_path: Path) -> None:
        calls: list[str] = []

        async def hook() -> None:
            calls.append("hook")

        writer = DocumentWriter(tmp_path / "doc.json")
        writer.defer_hooks((hook,))
        with patch(
            "src.infrastructure.persistence.writer.write_json_atomic_async",
            side_effect=OSError("disk full"),
        ):
            await writer.write({"n": 1})
        assert calls == []
        await writer.write({"n": 2})
        assert calls == ["hook"]

    def test_submit_without_loop_writes_synchronously(self, tmp_path: Path) -> None:
        writer = DocumentWriter(tmp_path / "doc.json")
        writer.submit({"n": 1})
        assert read_json(writer.path) == {"n": 1}

    async def test_flush_without_writes(self, tmp_path: Path) -> None:
        writer = DocumentWriter(tmp_path / "doc.json")
        await asyncio.wait_for(writer.flush(), timeout=1)
