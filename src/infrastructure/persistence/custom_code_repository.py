"""Custom code extension storage.

Version 1 is the legacy ``customCodes.json`` list of ``[name, code]``
pairs, found next to the data directory or inside it. Version 2 is
``data/extensions/customcode.json``. Legacy entries that pointed at the
old ROM hack and uncleared sentinel codes are dropped on upgrade; those
are custom level types now.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import structlog
from pydantic import TypeAdapter, ValidationError

from src.domain.errors.persistence import PersistenceCorruptionError
from src.domain.models.custom_level import LEGACY_CUSTOM_CODES
from src.domain.models.queue_entry import SMM2_ENTRY_TYPE
from src.infrastructure.persistence.documents import CustomCodesV2, declared_version, parse_document
from src.infrastructure.persistence.json_files import read_json
from src.infrastructure.persistence.versioning import (
    SchemaVersion,
    UpgradeResult,
    VersionChain,
    commit_load_result,
)
from src.infrastructure.persistence.writer import DocumentWriter

logger = structlog.get_logger(__name__)

CUSTOM_CODES_FILE = Path("extensions") / "customcode.json"
CUSTOM_CODES_VERSION = "2.0"
LEGACY_CUSTOM_CODES_FILE = "customCodes.json"

CustomCodeData = dict[str, dict[str, str | None]]

_PAIRS_V1 = TypeAdapter(list[tuple[str, str]])


class JsonCustomCodeRepository:
    """Stores custom codes as a versioned JSON extension document."""

    def __init__(
        self,
        data_directory: Path,
        legacy_directory: Path,
        *,
        pretty: bool = False,
    ) -> None:
        self._data_directory = data_directory
        self._legacy_directory = legacy_directory
        self._writer = DocumentWriter(data_directory / CUSTOM_CODES_FILE, pretty=pretty)
        self._chain: VersionChain[CustomCodeData] = VersionChain(
            "customcode",
            [
                SchemaVersion(1, self._load_v1),
                SchemaVersion(2, self._load_v2, self._upgrade_v1_to_v2),
            ],
            path=str(self._writer.path),
        )

    @property
    def path(self) -> Path:
        return self._writer.path

    async def load(self) -> CustomCodeData:
        result = await self._chain.load(create=dict)
        committed = await commit_load_result(
            result,
            save=self.save,
            verify=self._chain.read_newest,
            name="customcode",
        )
        logger.info("custom_codes_loaded", count=len(committed.data))
        return committed.data

    async def save(self, codes: CustomCodeData) -> bool:
        return await self._writer.write({"version": CUSTOM_CODES_VERSION, "data": codes})

    def _legacy_candidates(self) -> list[Path]:
        # the copy inside the data directory wins
        return [
            self._data_directory / LEGACY_CUSTOM_CODES_FILE,
            self._legacy_directory / LEGACY_CUSTOM_CODES_FILE,
        ]

    async def _load_v2(self) -> CustomCodeData | None:
        def read() -> Any:
            if not self.path.exists():
                return None
            return read_json(self.path)

        document = await asyncio.to_thread(read)
        if document is None:
            return None
        declared_version(self.path, document, 2, 2)
        parsed: CustomCodesV2 = parse_document(self.path, CustomCodesV2, document)
        return {
            name: {"code": entry.code, "type": entry.type}
            for name, entry in parsed.data.items()
            if entry.code is not None
        }

    async def _load_v1(self) -> tuple[Path, list[tuple[str, str]]] | None:
        def read() -> tuple[Path, list[tuple[str, str]]] | None:
            for candidate in self._legacy_candidates():
                if candidate.exists():
                    try:
                        pairs = _PAIRS_V1.validate_python(read_json(candidate))
                    except ValidationError as exc:
                        raise PersistenceCorruptionError(str(candidate), str(exc)) from exc
                    return candidate, pairs
            return None

        return await asyncio.to_thread(read)

    async def _upgrade_v1_to_v2(
        self, legacy: tuple[Path, list[tuple[str, str]]]
    ) -> UpgradeResult[CustomCodeData]:
        source, pairs = legacy
        # the legacy file always stored smm2 codes
        data: CustomCodeData = {
            name: {"code": code, "type": SMM2_ENTRY_TYPE}
            for name, code in pairs
            if code.upper() not in LEGACY_CUSTOM_CODES
        }
        dropped = len(pairs) - len(data)
        if dropped:
            logger.info("legacy_custom_level_codes_dropped", count=dropped)

        async def remove_legacy_file() -> None:
            try:
                await asyncio.to_thread(source.unlink, missing_ok=True)
            except OSError as exc:
                logger.warning("legacy_file_not_deleted", path=str(source), error=str(exc))
            else:
                logger.info("legacy_file_deleted", path=str(source))

        return UpgradeResult(data, (remove_legacy_file,))
