"""Custom code management.

Broadcasters can give levels memorable names. Codes are resolved when
they are added, so only levels the queue would accept can be aliased.
Every change is written to the custom code extension document.
"""

from __future__ import annotations

import structlog

from src.application.ports.queue_state_repository import CustomCodeRepositoryProtocol
from src.application.services.level_resolver import LevelResolver
from src.domain.models.custom_codes import CustomCodes

logger = structlog.get_logger(__name__)


class CustomCodeService:
    """List, add, remove and reload custom codes."""

    def __init__(
        self,
        resolver: LevelResolver,
        repository: CustomCodeRepositoryProtocol,
    ) -> None:
        self._resolver = resolver
        self._repository = repository

    @property
    def codes(self) -> CustomCodes:
        return self._resolver.custom_codes

    async def load(self) -> None:
        """Replace the in-memory codes with the stored ones."""
        self.codes.replace_all(await self._repository.load())

    def list_codes(self) -> str:
        names = self.codes.list_names()
        if not names:
            return "There are no custom codes set."
        return "The current custom codes are: " + ", ".join(names) + "."

    async def add(self, name: str, level_text: str) -> str:
        resolved = self._resolver.resolve(level_text)
        if resolved is None:
            return "That is an invalid level code."
        existing = self.codes.get(name)
        if existing is not None:
            return f"The custom code {existing.name} already exists"
        self.codes.set(name, resolved.code, resolved.type)
        await self._save()
        logger.info("custom_code_added", name=name, code=resolved.code)
        return f"Your custom code {name} for {resolved.code} has been added."

    async def remove(self, name: str) -> str:
        existing = self.codes.get(name)
        if existing is None:
            return f"The custom code {name} could not be found."
        self.codes.delete(name)
        await self._save()
        logger.info("custom_code_removed", name=existing.name)
        return f"The custom code {existing.name} for {existing.code} has been removed."

    async def reload(self) -> str:
        await self.load()
        return "Reloaded custom codes from disk."

    async def manage(self, arguments: str) -> str:
        """Handle ``add <name> <code>``, ``remove <name>`` and ``load``."""
        command, *rest = arguments.split() or [""]
        if command == "add" and len(rest) >= 2:
            return await self.add(rest[0], " ".join(rest[1:]))
        if command == "remove" and len(rest) == 1:
            return await self.remove(rest[0])
        if command in ("load", "reload", "restore") and not rest:
            return await self.reload()
        return (
            "Invalid arguments. The correct syntax is "
            "!customcode {add/remove/load} {customCode} {ID}."
        )

    async def _save(self) -> None:
        if not await self._repository.save(self.codes.to_mapping()):
            logger.warning("custom_codes_not_saved")
