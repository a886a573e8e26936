"""Application context — service container for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from patchguard.config import Config
    from patchguard.core.backup import BackupManager
    from patchguard.core.scheduler import BackupScheduler


@dataclass
class AppContext:
    """Central service container handed to every command."""

    config: Config
    backup_manager: BackupManager
    scheduler: BackupScheduler
