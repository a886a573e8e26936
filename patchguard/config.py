"""Application configuration — JSON file with locked, atomic writes."""

from __future__ import annotations

import copy
import json
import threading
from pathlib import Path
from typing import Any

from loguru import logger

_instance: "Config | None" = None

# Default data directory
_DEFAULT_DATA_DIR = Path.home() / "Documents" / "PatchGuard"


def get_config() -> Config:
    """Module-level factory — single global Config instance."""
    global _instance
    if _instance is None:
        _instance = Config()
    return _instance


def reset_config() -> None:
    """Reset the global config instance (for testing)."""
    global _instance
    _instance = None


class Config:
    """
    JSON-based application configuration with file locking.

    Backup retention and scheduling settings are not kept here; they are
    persisted in the backup catalog next to the backups they govern.
    """

    _DEFAULTS: dict[str, Any] = {
        "game_path": "",
        "game_version": "1.0.0",
        "extra_game_paths": [],
        "log_level": "INFO",
    }

    def __init__(self, data_dir: Path | None = None) -> None:
        self._dir = data_dir or _DEFAULT_DATA_DIR
        self._path = self._dir / "config.json"
        self._lock = threading.Lock()
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        """Read config.json over the defaults; unreadable files fall back to defaults."""
        data = copy.deepcopy(self._DEFAULTS)
        if not self._path.exists():
            return data
        try:
            with open(self._path, encoding="utf-8") as f:
                user_data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load config, using defaults: {e}")
            return data
        if not isinstance(user_data, dict):
            logger.warning(f"Ignoring config {self._path}: expected a JSON object")
            return data
        data.update({k: v for k, v in user_data.items() if k in self._DEFAULTS})
        return data

    def _store(self, key: str, value: Any) -> None:
        """Set one key and write the whole file through a temp file."""
        with self._lock:
            self._data[key] = value
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(".tmp")
            try:
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(self._data, f, ensure_ascii=False, indent=2)
                tmp_path.replace(self._path)
            except OSError as e:
                logger.error(f"Failed to save config: {e}")
                tmp_path.unlink(missing_ok=True)

    # ── Typed properties ──

    @property
    def data_dir(self) -> Path:
        return self._dir

    @property
    def catalog_path(self) -> Path:
        return self._dir / "backup" / "backup.json"

    @property
    def game_path(self) -> Path | None:
        raw = self._data.get("game_path", "")
        return Path(raw) if raw else None

    @game_path.setter
    def game_path(self, value: Path | None) -> None:
        self._store("game_path", str(value) if value else "")

    @property
    def game_version(self) -> str:
        return str(self._data.get("game_version", "1.0.0"))

    @property
    def extra_game_paths(self) -> list[str]:
        return list(self._data.get("extra_game_paths", []))

    @property
    def log_level(self) -> str:
        return str(self._data.get("log_level", "INFO")).upper()
