"""Version chain for stored documents.

A stored document goes through a series of schema versions. Each version
knows how to load its own stored form and, except for the first, how to
upgrade the value produced by the previous version. Loading walks the
chain from the newest version backwards until something is stored, then
applies every later upgrade in order.

Upgrades may produce hooks: side effects such as writing a file with
entries that could not be converted, or deleting legacy files. Hooks are
collected but never run while loading. ``commit_load_result`` saves the
upgraded value, reads it back, and only then runs the hooks, so a failed
upgrade never destroys the previous save files.

Usage:
    chain = VersionChain(
        "queue",
        [
            SchemaVersion(1, load_v1),
            SchemaVersion(2, load_v2, upgrade_v1_to_v2),
            SchemaVersion(3, load_v3, upgrade_v2_to_v3),
        ],
    )
    result = await chain.load(create=empty_state)
    state = (await commit_load_result(result, save=save, verify=chain.load_newest)).data
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog

from src.domain.errors.persistence import OutdatedDocumentError, UpgradeAbortedError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

UpgradeHook = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class UpgradeResult(Generic[T]):
    """Value produced by an upgrade, with hooks to run on commit."""

    data: T
    hooks: tuple[UpgradeHook, ...] = ()


@dataclass(frozen=True)
class SchemaVersion:
    """One version of a stored document.

    Attributes:
        version: Integer schema version, strictly increasing along a chain.
        loader: Reads the stored form of this version. Returns None when
            nothing of this version is stored.
        upgrade: Converts the previous version's value to this version.
            None only for the first version of a chain.
    """

    version: int
    loader: Callable[[], Awaitable[Any]]
    upgrade: Callable[[Any], Awaitable[UpgradeResult[Any]]] | None = None


@dataclass(frozen=True)
class LoadResult(Generic[T]):
    """Outcome of walking a version chain.

    Attributes:
        data: The value in the newest version's form.
        save: True if the value is not stored in the newest form yet.
        hooks: Upgrade hooks in chain order, not yet run.
        loaded_version: Version that was found in storage, None if the
            value was created.
    """

    data: T
    save: bool
    hooks: tuple[UpgradeHook, ...] = ()
    loaded_version: int | None = None


@dataclass(frozen=True)
class CommitResult(Generic[T]):
    """Outcome of committing a load result.

    Attributes:
        data: The value to use from now on.
        saved: True if the value was written and verified.
        pending_hooks: Hooks that still have to run after a successful save.
    """

    data: T
    saved: bool
    pending_hooks: tuple[UpgradeHook, ...] = ()


class VersionChain(Generic[T]):
    """An ordered list of schema versions for one kind of document."""

    def __init__(self, name: str, versions: Sequence[SchemaVersion], *, path: str = "") -> None:
        """Initialize the chain.

        Args:
            name: Document name used in log events.
            versions: Versions from oldest to newest.
            path: Location of the newest document, for error messages.

        Raises:
            ValueError: If the versions are not strictly increasing or an
                upgrade function is missing.
        """
        if not versions:
            raise ValueError("a version chain needs at least one version")
        for previous, current in zip(versions, versions[1:]):
            if current.version <= previous.version:
                raise ValueError(
                    f"versions must increase: {previous.version} then {current.version}"
                )
            if current.upgrade is None:
                raise ValueError(f"version {current.version} has no upgrade")
        if versions[0].upgrade is not None:
            raise ValueError(f"first version {versions[0].version} cannot upgrade")
        self._name = name
        self._versions = list(versions)
        self._path = path

    @property
    def newest(self) -> int:
        return self._versions[-1].version

    @property
    def oldest(self) -> int:
        return self._versions[0].version

    async def load(self, create: Callable[[], T]) -> LoadResult[T]:
        """Load the stored value, upgrading it to the newest version.

        Args:
            create: Produces a fresh value when nothing is stored.

        Returns:
            LoadResult with ``save=False`` only when the newest version was
            stored.
        """
        log = logger.bind(document=self._name, newest_version=self.newest)

        newest = self._versions[-1]
        data = await newest.loader()
        if data is not None:
            log.debug("document_loaded", version=newest.version)
            return LoadResult(data=data, save=False, loaded_version=newest.version)

        for index in range(len(self._versions) - 2, -1, -1):
            version = self._versions[index]
            data = await version.loader()
            if data is None:
                continue
            hooks: list[UpgradeHook] = []
            for later in self._versions[index + 1 :]:
                assert later.upgrade is not None
                upgraded = await later.upgrade(data)
                data = upgraded.data
                hooks.extend(upgraded.hooks)
                log.info(
                    "document_upgraded",
                    from_version=version.version,
                    to_version=later.version,
                    hooks=len(upgraded.hooks),
                )
            return LoadResult(
                data=data,
                save=True,
                hooks=tuple(hooks),
                loaded_version=version.version,
            )

        log.info("document_created")
        return LoadResult(data=create(), save=True)

    async def read_newest(self) -> T | None:
        """Read the newest version, None if it is not stored."""
        return await self._versions[-1].loader()

    async def load_newest(self) -> T:
        """Load the stored value only if it is in the newest version.

        Raises:
            OutdatedDocumentError: If nothing is stored in the newest
                version; names the older version found, if any.
        """
        data = await self._versions[-1].loader()
        if data is not None:
            return data
        found: int | None = None
        for version in reversed(self._versions[:-1]):
            if await version.loader() is not None:
                found = version.version
                break
        raise OutdatedDocumentError(self._path or self._name, found, self.newest)


async def run_hooks(hooks: Sequence[UpgradeHook]) -> None:
    """Run upgrade hooks one after another, in order."""
    for hook in hooks:
        await hook()


async def commit_load_result(
    result: LoadResult[T],
    *,
    save: Callable[[T], Awaitable[Any]],
    verify: Callable[[], Awaitable[T | None]],
    persistence_enabled: bool = True,
    name: str = "document",
) -> CommitResult[T]:
    """Persist a load result and run its hooks.

    With hooks present the value is always saved (even if ``result.save``
    is False), read back with ``verify``, and the hooks run only after the
    read succeeded. With persistence disabled nothing is written: the
    upgraded value is used in memory and its hooks are returned as
    pending so the caller runs them after its next successful save.

    Args:
        result: The load result to commit.
        save: Writes a value.
        verify: Reads the written value back.
        persistence_enabled: Whether writing is allowed.
        name: Document name used in log events.

    Returns:
        CommitResult with the verified value.

    Raises:
        UpgradeAbortedError: If ``verify`` returns None.
        Exception: Anything raised by ``save`` or ``verify``; hooks do not run.
    """
    log = logger.bind(document=name, hooks=len(result.hooks))

    if not persistence_enabled:
        if result.hooks:
            log.warning(
                "upgrade_hooks_deferred",
                message=(
                    "Upgraded save file while saving is turned off. "
                    "Upgrade steps will finish after the next save."
                ),
            )
            return CommitResult(data=result.data, saved=False, pending_hooks=result.hooks)
        if result.save:
            log.warning(
                "upgrade_not_saved",
                message=(
                    "Upgraded save file while saving is turned off! Please make sure "
                    "to save the changes manually or else the upgrade is lost."
                ),
            )
        return CommitResult(data=result.data, saved=False)

    if not result.save and not result.hooks:
        return CommitResult(data=result.data, saved=False)

    await save(result.data)
    verified = await verify()
    if verified is None:
        log.error("upgrade_verification_failed")
        raise UpgradeAbortedError("Creating save file from an old version failed!")
    await run_hooks(result.hooks)
    log.info("document_committed")
    return CommitResult(data=verified, saved=True)
