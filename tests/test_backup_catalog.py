"""Tests for BackupCatalog JSON persistence."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from patchguard.data.backup_catalog import BackupCatalog
from patchguard.errors import PersistenceError
from patchguard.models.backup import Backup, BackupDatabase, BackupFile, BackupSettings, BackupType


@pytest.fixture
def catalog(tmp_path: Path) -> BackupCatalog:
    return BackupCatalog(tmp_path / "backup" / "backup.json")


@pytest.fixture
def sample_db() -> BackupDatabase:
    return BackupDatabase(
        backups=[
            Backup(
                id="backup_20240301_093000",
                timestamp=datetime(2024, 3, 1, 9, 30, 0, 123456, tzinfo=timezone.utc),
                description="before event patch",
                files=[BackupFile(path="imagepack2/ui.npk", hash="ab" * 32, size=42)],
                type=BackupType.AUTO,
                game_version="1.0.0",
            )
        ],
        settings=BackupSettings(auto_backup=False, backup_interval=1800, max_backups=4),
    )


class TestLoad:
    def test_missing_file_yields_defaults(self, catalog: BackupCatalog) -> None:
        db = catalog.load()
        assert db.backups == []
        assert db.settings.auto_backup is True
        assert db.settings.backup_interval == 3600
        assert db.settings.max_backups == 10
        assert db.settings.backup_path == "backups"
        assert db.settings.compression_enabled is True
        assert not catalog.path.exists()

    def test_malformed_json(self, catalog: BackupCatalog) -> None:
        catalog.path.parent.mkdir(parents=True)
        catalog.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError):
            catalog.load()

    def test_skips_malformed_entries(self, catalog: BackupCatalog) -> None:
        catalog.path.parent.mkdir(parents=True)
        catalog.path.write_text(
            json.dumps(
                {
                    "backups": [
                        {"id": "broken"},
                        {
                            "id": "backup_20240101_000000",
                            "timestamp": "2024-01-01T00:00:00+00:00",
                            "description": "ok",
                            "files": [],
                            "type": "manual",
                            "gameVersion": "1.0.0",
                        },
                    ],
                    "settings": {"maxBackups": 3},
                }
            ),
            encoding="utf-8",
        )
        db = catalog.load()
        assert [b.id for b in db.backups] == ["backup_20240101_000000"]
        assert db.settings.max_backups == 3
        assert db.settings.backup_interval == 3600

    def test_naive_timestamps_become_local(self, catalog: BackupCatalog) -> None:
        catalog.path.parent.mkdir(parents=True)
        catalog.path.write_text(
            json.dumps(
                {"backups": [{"id": "b", "timestamp": "2024-01-01T08:00:00", "files": []}]}
            ),
            encoding="utf-8",
        )
        (backup,) = catalog.load().backups
        assert backup.timestamp.tzinfo is not None


class TestSave:
    def test_round_trip(self, catalog: BackupCatalog, sample_db: BackupDatabase) -> None:
        catalog.save(sample_db)
        assert catalog.load() == sample_db

    def test_wire_format(self, catalog: BackupCatalog, sample_db: BackupDatabase) -> None:
        catalog.save(sample_db)
        data = json.loads(catalog.path.read_text(encoding="utf-8"))

        assert data["settings"] == {
            "autoBackup": False,
            "backupInterval": 1800,
            "maxBackups": 4,
            "backupPath": "backups",
            "compressionEnabled": True,
        }
        entry = data["backups"][0]
        assert entry["id"] == "backup_20240301_093000"
        assert entry["type"] == "auto"
        assert entry["gameVersion"] == "1.0.0"
        assert entry["files"] == [{"path": "imagepack2/ui.npk", "hash": "ab" * 32, "size": 42}]
        assert datetime.fromisoformat(entry["timestamp"]) == sample_db.backups[0].timestamp

    def test_no_temp_file_left(self, catalog: BackupCatalog, sample_db: BackupDatabase) -> None:
        catalog.save(sample_db)
        assert sorted(p.name for p in catalog.path.parent.iterdir()) == ["backup.json"]

    def test_write_failure(self, tmp_path: Path, sample_db: BackupDatabase) -> None:
        blocker = tmp_path / "backup"
        blocker.write_text("a file where the directory should be", encoding="utf-8")
        catalog = BackupCatalog(blocker / "backup.json")
        with pytest.raises(PersistenceError):
            catalog.save(sample_db)
