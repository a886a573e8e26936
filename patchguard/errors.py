"""Backup engine error types."""

from __future__ import annotations


class BackupError(Exception):
    """Base class for all backup engine failures."""


class BackupIOError(BackupError):
    """A file could not be opened, read, written or walked."""


class IntegrityError(BackupError):
    """A stored backup file no longer matches its recorded digest."""

    def __init__(self, path: str, expected: str = "", actual: str = "") -> None:
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(f"backup file corrupted: {path}")


class PersistenceError(BackupError):
    """The backup catalog could not be serialized, written or read."""


class BackupNotFoundError(BackupError):
    """No backup with the requested ID exists in the catalog."""

    def __init__(self, backup_id: str) -> None:
        self.backup_id = backup_id
        super().__init__(f"backup not found: {backup_id}")
