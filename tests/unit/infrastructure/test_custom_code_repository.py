"""Unit tests for the custom code extension document."""

import json
from pathlib import Path

import pytest

from src.domain.errors.persistence import IncompatibleVersionError, PersistenceCorruptionError
from src.infrastructure.persistence.custom_code_repository import JsonCustomCodeRepository
from tests.helpers.level_codes import COURSE_CODE, OTHER_COURSE_CODE


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def repository(data_dir: Path, tmp_path: Path) -> JsonCustomCodeRepository:
    return JsonCustomCodeRepository(data_dir, tmp_path)


class TestCustomCodeLoading:
    async def test_nothing_stored(self, repository: JsonCustomCodeRepository) -> None:
        assert await repository.load() == {}
        document = json.loads(repository.path.read_text(encoding="utf-8"))
        assert document == {"version": "2.0", "data": {}}

    async def test_round_trip(self, repository: JsonCustomCodeRepository, data_dir: Path, tmp_path: Path) -> None:
        codes = {"kaizo": {"code": COURSE_CODE, "type": "smm2"}}
        assert await repository.save(codes)
        assert await JsonCustomCodeRepository(data_dir, tmp_path).load() == codes

    async def test_newer_version_is_rejected(
        self, repository: JsonCustomCodeRepository
    ) -> None:
        repository.path.parent.mkdir(parents=True)
        repository.path.write_text('{"version": "3.0", "data": {}}', encoding="utf-8")
        with pytest.raises(IncompatibleVersionError):
            await repository.load()


class TestLegacyCustomCodes:
    """Tests for the ``customCodes.json`` upgrade."""

    async def test_pairs_are_upgraded_and_file_removed(
        self, repository: JsonCustomCodeRepository, tmp_path: Path
    ) -> None:
        legacy = tmp_path / "customCodes.json"
        legacy.write_text(
            json.dumps([["kaizo", COURSE_CODE], ["hack", "R0M-HAK-LVL"], ["easy", OTHER_COURSE_CODE]]),
            encoding="utf-8",
        )

        codes = await repository.load()

        assert codes == {
            "kaizo": {"code": COURSE_CODE, "type": "smm2"},
            "easy": {"code": OTHER_COURSE_CODE, "type": "smm2"},
        }
        assert not legacy.exists()
        assert repository.path.exists()

    async def test_copy_in_data_directory_wins(
        self, repository: JsonCustomCodeRepository, data_dir: Path, tmp_path: Path
    ) -> None:
        data_dir.mkdir()
        (data_dir / "customCodes.json").write_text(json.dumps([["inner", COURSE_CODE]]), encoding="utf-8")
        (tmp_path / "customCodes.json").write_text(json.dumps([["outer", COURSE_CODE]]), encoding="utf-8")

        codes = await repository.load()

        assert list(codes) == ["inner"]
        assert (tmp_path / "customCodes.json").exists()

    async def test_malformed_pairs_are_corruption(
        self, repository: JsonCustomCodeRepository, tmp_path: Path
    ) -> None:
        legacy = tmp_path / "customCodes.json"
        legacy.write_text('[["only-a-name"]]', encoding="utf-8")
        with pytest.raises(PersistenceCorruptionError):
            await repository.load()
        assert legacy.exists()
