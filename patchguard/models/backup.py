"""Backup catalog models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

# Interval choices offered to the user, in seconds
INTERVAL_PRESETS: dict[str, int] = {
    "30m": 1800,
    "1h": 3600,
    "2h": 7200,
    "4h": 14400,
    "8h": 28800,
    "12h": 43200,
    "24h": 86400,
}


class BackupType(StrEnum):
    """Who triggered a backup."""

    MANUAL = "manual"
    AUTO = "auto"


@dataclass
class BackupFile:
    """One tracked file inside a backup."""

    path: str  # Relative to the game directory, POSIX separators
    hash: str  # SHA-256 hex digest of the stored copy
    size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "hash": self.hash, "size": self.size}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackupFile:
        return cls(path=data["path"], hash=data["hash"], size=int(data.get("size", 0)))


@dataclass
class Backup:
    """A point-in-time snapshot of the tracked patch files."""

    id: str
    timestamp: datetime
    description: str = ""
    files: list[BackupFile] = field(default_factory=list)
    type: BackupType = BackupType.MANUAL
    game_version: str = ""

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self.files)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "description": self.description,
            "files": [f.to_dict() for f in self.files],
            "type": str(self.type),
            "gameVersion": self.game_version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Backup:
        timestamp = datetime.fromisoformat(data["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.astimezone()  # Naive values are local time
        return cls(
            id=data["id"],
            timestamp=timestamp,
            description=data.get("description", ""),
            files=[BackupFile.from_dict(f) for f in data.get("files") or []],
            type=BackupType(data.get("type", BackupType.MANUAL)),
            game_version=data.get("gameVersion", ""),
        )


@dataclass
class BackupSettings:
    """Retention and scheduling settings, persisted alongside the backups."""

    auto_backup: bool = True
    backup_interval: int = 3600  # seconds
    max_backups: int = 10
    backup_path: str = "backups"  # Relative to the data directory
    compression_enabled: bool = True  # Advisory only, files are stored as-is

    def validate(self) -> None:
        """Raise ValueError if the settings cannot drive the engine."""
        if self.backup_interval < 1:
            raise ValueError(f"backup interval must be at least 1 second, got {self.backup_interval}")
        if self.max_backups < 1:
            raise ValueError(f"max backups must be at least 1, got {self.max_backups}")
        if not self.backup_path.strip():
            raise ValueError("backup path must not be empty")

    def to_dict(self) -> dict[str, Any]:
        return {
            "autoBackup": self.auto_backup,
            "backupInterval": self.backup_interval,
            "maxBackups": self.max_backups,
            "backupPath": self.backup_path,
            "compressionEnabled": self.compression_enabled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackupSettings:
        defaults = cls()
        return cls(
            auto_backup=bool(data.get("autoBackup", defaults.auto_backup)),
            backup_interval=int(data.get("backupInterval", defaults.backup_interval)),
            max_backups=int(data.get("maxBackups", defaults.max_backups)),
            backup_path=str(data.get("backupPath", defaults.backup_path)),
            compression_enabled=bool(data.get("compressionEnabled", defaults.compression_enabled)),
        )


@dataclass
class BackupDatabase:
    """All known backups (creation order) plus the settings singleton."""

    backups: list[Backup] = field(default_factory=list)
    settings: BackupSettings = field(default_factory=BackupSettings)

    def find(self, backup_id: str) -> Backup | None:
        for backup in self.backups:
            if backup.id == backup_id:
                return backup
        return None
