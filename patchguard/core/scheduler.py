"""Auto-backup scheduler — one background thread driving periodic backups."""

from __future__ import annotations

import threading
import time
from enum import StrEnum
from typing import Protocol

from loguru import logger

from patchguard.errors import BackupError
from patchguard.models.backup import Backup, BackupSettings, BackupType


class BackupTrigger(Protocol):
    """What the scheduler needs from the backup manager."""

    @property
    def settings(self) -> BackupSettings: ...

    def create(self, description: str = "", backup_type: BackupType | str = BackupType.MANUAL) -> Backup: ...


class SchedulerState(StrEnum):
    DISABLED = "disabled"
    ARMED = "armed"
    FIRING = "firing"


class BackupScheduler:
    """
    Periodic auto-backup timer.

    The loop re-reads the current settings every time it arms, so interval
    and enable changes take effect on the next ``reschedule()``. A pending
    wait is cancelled whenever ``reschedule()`` is called; there is never
    more than one timer.
    """

    def __init__(self, trigger: BackupTrigger) -> None:
        self._trigger = trigger
        self._cond = threading.Condition()
        self._generation = 0
        self._state = SchedulerState.DISABLED
        self._thread: threading.Thread | None = None
        # Each loop owns its stop token, so a loop still finishing a backup
        # after stop() exits instead of re-arming next to its replacement.
        self._stop_token = threading.Event()

    @property
    def state(self) -> SchedulerState:
        with self._cond:
            return self._state

    @property
    def is_running(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._stop_token.is_set()
        )

    def start(self) -> None:
        """Start the scheduler thread (no-op if already running)."""
        if self.is_running:
            return
        token = threading.Event()
        self._stop_token = token
        self._thread = threading.Thread(
            target=self._run, args=(token,), name="auto-backup", daemon=True
        )
        self._thread.start()
        logger.debug("Auto-backup scheduler started")

    def reschedule(self, _settings: BackupSettings | None = None) -> None:
        """
        Cancel the pending timer and re-arm from the current settings.

        The argument is ignored; it lets this method be registered directly
        as a BackupManager settings listener.
        """
        with self._cond:
            self._generation += 1
            self._cond.notify_all()

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the loop. An auto backup already in progress runs to completion."""
        with self._cond:
            self._stop_token.set()
            self._generation += 1
            self._cond.notify_all()
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("Auto backup still running; its loop exits once it finishes")
        with self._cond:
            self._state = SchedulerState.DISABLED
        logger.debug("Auto-backup scheduler stopped")

    def _run(self, stop_token: threading.Event) -> None:
        while True:
            with self._cond:
                if stop_token.is_set():
                    return
                generation = self._generation

            # Read outside the condition: the manager's lock may be held by a
            # running backup. A settings change in between bumps the generation.
            settings = self._trigger.settings

            with self._cond:
                if self._generation != generation:
                    continue

                if not settings.auto_backup:
                    self._state = SchedulerState.DISABLED
                    self._cond.wait_for(lambda: self._generation != generation)
                    continue

                self._state = SchedulerState.ARMED
                interval = float(settings.backup_interval)
                deadline = time.monotonic() + interval
                logger.debug(f"Auto-backup armed: next run in {settings.backup_interval}s")
                while self._generation == generation:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    self._cond.wait(remaining)
                if self._generation != generation:
                    continue
                self._state = SchedulerState.FIRING

            self._fire()

    def _fire(self) -> None:
        try:
            self._trigger.create("Auto backup", BackupType.AUTO)
        except BackupError as e:
            logger.error(f"Auto backup failed: {e}")
        except Exception as e:
            logger.exception(f"Unexpected auto backup failure: {e}")
