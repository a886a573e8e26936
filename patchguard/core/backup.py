"""Backup manager — content-addressed snapshots of the game's patch files."""

from __future__ import annotations

import shutil
import tempfile
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from loguru import logger

from patchguard.core.game_locator import iter_tracked_files, resolve_target
from patchguard.core.hashing import file_digest
from patchguard.core.restore import FileChange, RestoreManager, RestoreResult
from patchguard.data.backup_catalog import BackupCatalog
from patchguard.errors import BackupError, BackupIOError, BackupNotFoundError, PersistenceError
from patchguard.models.backup import Backup, BackupDatabase, BackupFile, BackupSettings, BackupType

_STAGING_PREFIX = ".staging_"

SettingsListener = Callable[[BackupSettings], None]


def _local_now() -> datetime:
    return datetime.now().astimezone()


def apply_retention(backups: list[Backup], max_backups: int) -> tuple[list[Backup], list[Backup]]:
    """
    Split *backups* into ``(kept, evicted)``.

    The newest ``max_backups`` by timestamp survive; kept backups stay in
    their original (creation) order. On equal timestamps the later insert
    counts as newer.
    """
    if len(backups) <= max_backups:
        return list(backups), []

    ranked = [
        b for _, b in sorted(enumerate(backups), key=lambda p: (p[1].timestamp, p[0]), reverse=True)
    ]
    keep_ids = {b.id for b in ranked[:max_backups]}
    kept = [b for b in backups if b.id in keep_ids]
    return kept, ranked[max_backups:]


class BackupManager:
    """
    Snapshot engine for the game's ``imagepack2`` patch files.

    Owns the backup database. Every create, restore, delete and settings
    change runs under one re-entrant lock, so the auto-backup scheduler and
    user-triggered calls never interleave on the catalog or the store.
    """

    def __init__(
        self,
        catalog: BackupCatalog,
        data_dir: Path,
        game_dir: Path,
        game_version: str = "",
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self._catalog = catalog
        self._data_dir = data_dir
        self._game_dir = game_dir
        self._game_version = game_version
        self._clock = clock
        self._restorer = RestoreManager(game_dir)
        self._lock = threading.RLock()
        self._listeners: list[SettingsListener] = []
        self._db = catalog.load()
        self._sweep_staging()

    # ── Paths ──

    @property
    def game_dir(self) -> Path:
        return self._game_dir

    @property
    def backup_root(self) -> Path:
        with self._lock:
            return self._data_dir / self._db.settings.backup_path

    def snapshot_dir(self, backup_id: str) -> Path:
        return self.backup_root / backup_id

    def _ensure_store(self) -> Path:
        root = self.backup_root
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupIOError(f"Cannot create backup store {root}: {e}") from e
        return root

    def _sweep_staging(self) -> None:
        """Remove half-written snapshots left behind by an interrupted create."""
        root = self.backup_root
        if not root.is_dir():
            return
        for leftover in root.glob(f"{_STAGING_PREFIX}*"):
            if leftover.is_dir():
                logger.warning(f"Removing incomplete snapshot: {leftover.name}")
                self._remove_tree(leftover)

    @staticmethod
    def _remove_tree(path: Path) -> bool:
        """Delete a snapshot directory; failures are logged, not raised."""
        if not path.exists():
            return True
        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.warning(f"Failed to remove {path}: {e}")
            return False
        return True

    # ── Queries ──

    def list_backups(self) -> list[Backup]:
        """All backups in creation order."""
        with self._lock:
            return list(self._db.backups)

    def get_backup(self, backup_id: str) -> Backup:
        with self._lock:
            backup = self._db.find(backup_id)
        if backup is None:
            raise BackupNotFoundError(backup_id)
        return backup

    def _resolve(self, backup: Backup | str) -> Backup:
        return self.get_backup(backup.id if isinstance(backup, Backup) else backup)

    # ── Create ──

    def _next_id(self, now: datetime, store: Path) -> str:
        base = now.strftime("backup_%Y%m%d_%H%M%S")
        candidate = base
        counter = 1
        while self._db.find(candidate) is not None or (store / candidate).exists():
            candidate = f"{base}_{counter}"
            counter += 1
        return candidate

    def _snapshot_into(self, staging: Path) -> list[BackupFile]:
        """Hash and copy every tracked file into *staging*."""
        files: list[BackupFile] = []
        try:
            for tracked in iter_tracked_files(self._game_dir):
                dest = resolve_target(staging, tracked.relative_path)
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(tracked.path, dest)
                # Digest and size describe the stored copy, not the live file
                files.append(
                    BackupFile(
                        path=tracked.relative_path,
                        hash=file_digest(dest),
                        size=dest.stat().st_size,
                    )
                )
        except OSError as e:
            raise BackupIOError(f"Backup walk failed: {e}") from e
        return files

    def create(self, description: str = "", backup_type: BackupType | str = BackupType.MANUAL) -> Backup:
        """
        Snapshot all tracked patch files.

        Files are staged in a hidden directory and renamed into the store
        only after the walk succeeds. The catalog is persisted before the
        in-memory state changes; if that fails the new snapshot is removed
        and PersistenceError is raised.
        """
        backup_type = BackupType(backup_type)
        if not description.strip():
            description = "Auto backup" if backup_type is BackupType.AUTO else "Manual backup"

        with self._lock:
            settings = self._db.settings
            store = self._ensure_store()
            now = self._clock()
            backup_id = self._next_id(now, store)
            snapshot_dir = store / backup_id

            try:
                staging = Path(tempfile.mkdtemp(prefix=f"{_STAGING_PREFIX}{backup_id}_", dir=store))
            except OSError as e:
                raise BackupIOError(f"Cannot create staging directory in {store}: {e}") from e

            try:
                files = self._snapshot_into(staging)
                try:
                    staging.rename(snapshot_dir)
                except OSError as e:
                    raise BackupIOError(f"Cannot move snapshot into place: {e}") from e
            except BackupError:
                self._remove_tree(staging)
                raise

            backup = Backup(
                id=backup_id,
                timestamp=now,
                description=description,
                files=files,
                type=backup_type,
                game_version=self._game_version,
            )
            kept, evicted = apply_retention([*self._db.backups, backup], settings.max_backups)
            new_db = BackupDatabase(backups=kept, settings=settings)

            try:
                self._catalog.save(new_db)
            except PersistenceError:
                self._remove_tree(snapshot_dir)
                raise

            self._db = new_db
            for old in evicted:
                if self._remove_tree(store / old.id):
                    logger.debug(f"Evicted old backup: {old.id}")
                else:
                    logger.error(f"Evicted backup {old.id} left an orphaned directory")

        logger.info(f"Created {backup_type} backup {backup_id}: {len(files)} file(s)")
        return backup

    # ── Restore ──

    def verify(self, backup: Backup | str) -> None:
        """Raise IntegrityError if any stored file differs from its recorded digest."""
        with self._lock:
            target = self._resolve(backup)
            self._restorer.verify(target, self.snapshot_dir(target.id))

    def preview_restore(self, backup: Backup | str) -> list[FileChange]:
        with self._lock:
            return self._restorer.preview_restore(self._resolve(backup))

    def restore(self, backup: Backup | str) -> RestoreResult:
        """Verify every file of *backup*, then copy them over the live game files."""
        with self._lock:
            target = self._resolve(backup)
            return self._restorer.restore_backup(target, self.snapshot_dir(target.id))

    # ── Delete ──

    def delete_backup(self, backup: Backup | str) -> None:
        """Drop a backup from the catalog and remove its snapshot directory."""
        with self._lock:
            target = self._resolve(backup)
            new_db = BackupDatabase(
                backups=[b for b in self._db.backups if b.id != target.id],
                settings=self._db.settings,
            )
            self._catalog.save(new_db)
            self._db = new_db
            self._remove_tree(self.snapshot_dir(target.id))
        logger.info(f"Deleted backup {target.id}")

    # ── Settings ──

    @property
    def settings(self) -> BackupSettings:
        with self._lock:
            return replace(self._db.settings)

    def subscribe_settings(self, listener: SettingsListener) -> None:
        """Register a callback invoked after every successful settings change."""
        self._listeners.append(listener)

    def _relocate_store(self, old_root: Path, new_root: Path) -> None:
        """Move existing snapshots when the store path changes; all or nothing."""
        moved: list[tuple[Path, Path]] = []
        try:
            new_root.mkdir(parents=True, exist_ok=True)
            for backup in self._db.backups:
                src = old_root / backup.id
                if src.exists():
                    dst = new_root / backup.id
                    shutil.move(str(src), str(dst))
                    moved.append((src, dst))
        except OSError as e:
            for src, dst in reversed(moved):
                try:
                    shutil.move(str(dst), str(src))
                except OSError as undo_err:
                    logger.error(f"Failed to move {dst} back to {src}: {undo_err}")
            raise BackupIOError(f"Cannot relocate backups to {new_root}: {e}") from e

    def update_settings(self, settings: BackupSettings) -> None:
        """Validate, persist and apply new settings, then notify listeners."""
        settings = replace(settings)
        settings.validate()

        with self._lock:
            old_root = self.backup_root
            new_root = self._data_dir / settings.backup_path
            relocate = old_root.resolve() != new_root.resolve()
            if relocate:
                self._relocate_store(old_root, new_root)

            new_db = BackupDatabase(backups=list(self._db.backups), settings=settings)
            try:
                self._catalog.save(new_db)
            except PersistenceError:
                if relocate:
                    self._relocate_store(new_root, old_root)
                raise
            self._db = new_db

        logger.info(
            f"Backup settings updated: auto={settings.auto_backup}, "
            f"interval={settings.backup_interval}s, max={settings.max_backups}"
        )
        for listener in list(self._listeners):
            listener(replace(settings))
