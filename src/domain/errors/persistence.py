"""Persistence errors for save files and their migrations.

These errors are fatal at startup: the queue must not accept commands
with partially hydrated state. None of them is raised after anything
on disk was deleted or overwritten.
"""

from __future__ import annotations

from src.domain.exceptions import QueueEngineError


class PersistenceError(QueueEngineError):
    """Base class for save file errors."""


class PersistenceCorruptionError(PersistenceError):
    """Raised when a stored document can not be read or is malformed.

    Attributes:
        path: The file that failed to load.
        reason: Description of what is wrong with the file.
    """

    def __init__(self, path: str, reason: str) -> None:
        """Initialize corruption error.

        Args:
            path: The file that failed to load.
            reason: Description of what is wrong with the file.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Save file {path} is corrupt: {reason}")


class IncompatibleVersionError(PersistenceError):
    """Raised when a stored version is outside the supported range.

    Attributes:
        path: The file that failed to load.
        found: The version declared in the file.
        supported_min: Oldest version that can be upgraded.
        supported_max: Newest known version.
    """

    def __init__(
        self,
        path: str,
        found: object,
        supported_min: int,
        supported_max: int,
    ) -> None:
        """Initialize incompatible version error.

        Args:
            path: The file that failed to load.
            found: The version declared in the file.
            supported_min: Oldest version that can be upgraded.
            supported_max: Newest known version.
        """
        self.path = path
        self.found = found
        self.supported_min = supported_min
        self.supported_max = supported_max
        super().__init__(
            f"Save file {path}: version {found!r} is not compatible, "
            f"supported versions are {supported_min} to {supported_max}. "
            "Did you downgrade?"
        )


class OutdatedDocumentError(PersistenceError):
    """Raised by strict loads when the stored document is not the newest version.

    Attributes:
        path: The file that was read.
        found: The version found on disk, None if nothing was stored.
        newest: The version that was required.
    """

    def __init__(self, path: str, found: int | None, newest: int) -> None:
        """Initialize outdated document error.

        Args:
            path: The file that was read.
            found: The version found on disk, None if nothing was stored.
            newest: The version that was required.
        """
        self.path = path
        self.found = found
        self.newest = newest
        stored = "no document" if found is None else f"version {found}"
        super().__init__(
            f"Save file {path}: expected version {newest}, found {stored}"
        )


class UpgradeAbortedError(PersistenceError):
    """Raised when an upgraded document could not be committed.

    Upgrade hooks are never run once this error is raised.
    """
