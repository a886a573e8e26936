"""Restore manager — verify snapshots, then copy them back over the live game files."""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from patchguard.core.game_locator import resolve_target
from patchguard.core.hashing import file_digest
from patchguard.errors import BackupIOError, IntegrityError
from patchguard.models.backup import Backup, BackupFile


def _locate(root: Path, bf: BackupFile) -> Path:
    """Resolve a recorded path under *root*; an escaping path marks the record corrupted."""
    try:
        return resolve_target(root, bf.path)
    except ValueError as e:
        logger.error(f"Rejected backup entry {bf.path!r}: {e}")
        raise IntegrityError(bf.path) from e


@dataclass
class FileChange:
    """Information about a file that will be restored."""

    relative_path: str
    destination: Path
    exists_locally: bool = False
    unchanged: bool = False  # Live file already matches the backup


@dataclass
class RestoreResult:
    """Result of a restore operation."""

    backup_id: str
    restored_files: list[str] = field(default_factory=list)


class RestoreManager:
    """
    Restore backups into the game directory.

    Restore is two-phase: every stored file is verified against its recorded
    digest before any live file is written, so a corrupted backup never
    partially overwrites the game.
    """

    def __init__(self, game_dir: Path) -> None:
        self._game_dir = game_dir

    @property
    def game_dir(self) -> Path:
        return self._game_dir

    def verify(self, backup: Backup, snapshot_dir: Path) -> None:
        """Check every stored file; raise IntegrityError on the first mismatch."""
        for bf in backup.files:
            stored = _locate(snapshot_dir, bf)
            try:
                actual = file_digest(stored)
            except BackupIOError as e:
                raise BackupIOError(f"backup verification failed: {e}") from e
            if actual != bf.hash:
                logger.error(f"Backup {backup.id}: {bf.path} digest mismatch")
                raise IntegrityError(bf.path, expected=bf.hash, actual=actual)

    def preview_restore(self, backup: Backup) -> list[FileChange]:
        """Preview which live files a restore would create or overwrite."""
        changes: list[FileChange] = []
        for bf in backup.files:
            dest = _locate(self._game_dir, bf)
            change = FileChange(
                relative_path=bf.path,
                destination=dest,
                exists_locally=dest.is_file(),
            )
            if change.exists_locally:
                try:
                    change.unchanged = file_digest(dest) == bf.hash
                except BackupIOError as e:
                    logger.warning(f"Could not hash live file {dest}: {e}")
            changes.append(change)
        return changes

    def restore_backup(self, backup: Backup, snapshot_dir: Path) -> RestoreResult:
        """
        Restore a backup to the game directory.

        Phase 1 verifies all files; phase 2 copies each one into place via a
        sibling temp file and an atomic replace. Existing files are
        overwritten unconditionally.
        """
        self.verify(backup, snapshot_dir)

        result = RestoreResult(backup_id=backup.id)
        for bf in backup.files:
            source = _locate(snapshot_dir, bf)
            dest = _locate(self._game_dir, bf)
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                self._copy_into_place(source, dest)
            except OSError as e:
                logger.error(f"Restore error for {dest}: {e}")
                raise BackupIOError(f"Failed to restore {bf.path}: {e}") from e
            result.restored_files.append(bf.path)

        logger.info(f"Restored {len(result.restored_files)} file(s) from {backup.id}")
        return result

    @staticmethod
    def _copy_into_place(source: Path, dest: Path) -> None:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=dest.parent)
        os.close(fd)
        tmp = Path(tmp_name)
        try:
            shutil.copyfile(source, tmp)
            tmp.replace(dest)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
