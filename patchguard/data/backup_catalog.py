"""Backup catalog — JSON persistence for the backup database."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger

from patchguard.errors import PersistenceError
from patchguard.models.backup import Backup, BackupDatabase, BackupSettings


class BackupCatalog:
    """
    Reads/writes backup.json.

    Layout: ``{"backups": [...], "settings": {...}}``
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> BackupDatabase:
        """Load the catalog; a missing file yields default settings and no backups."""
        if not self._path.exists():
            logger.info(f"No backup catalog at {self._path}, using defaults")
            return BackupDatabase()

        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise PersistenceError(f"Failed to load backup catalog {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Backup catalog {self._path} is not a JSON object")

        settings_data = data.get("settings")
        settings = (
            BackupSettings.from_dict(settings_data)
            if isinstance(settings_data, dict)
            else BackupSettings()
        )

        backups: list[Backup] = []
        for entry in data.get("backups") or []:
            try:
                backups.append(Backup.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed backup entry: {e}")

        logger.debug(f"Loaded {len(backups)} backup(s) from {self._path}")
        return BackupDatabase(backups=backups, settings=settings)

    def save(self, db: BackupDatabase) -> None:
        """Persist the catalog via temp file + atomic replace."""
        data: dict[str, Any] = {
            "backups": [b.to_dict() for b in db.backups],
            "settings": db.settings.to_dict(),
        }
        tmp = self._path.with_suffix(".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=4)
            tmp.replace(self._path)
        except (OSError, TypeError, ValueError) as e:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                logger.debug(f"Could not remove temp catalog {tmp}")
            raise PersistenceError(f"Failed to save backup catalog {self._path}: {e}") from e
