"""Application entry point — wires services and runs a backup command.

Usage:
    python main.py create [-d DESCRIPTION]
    python main.py list
    python main.py show <backup_id>
    python main.py verify <backup_id>
    python main.py restore <backup_id> [--yes]
    python main.py delete <backup_id>
    python main.py settings [--auto | --no-auto] [--interval 1h] [--max 10] ...
    python main.py locate
    python main.py run
"""

from __future__ import annotations

import argparse
import sys
import threading
from dataclasses import replace
from pathlib import Path

from loguru import logger

from patchguard.config import Config, get_config
from patchguard.context import AppContext
from patchguard.core.backup import BackupManager
from patchguard.core.game_locator import find_game_path, is_valid_game_path
from patchguard.core.scheduler import BackupScheduler
from patchguard.data.backup_catalog import BackupCatalog
from patchguard.errors import BackupError, IntegrityError
from patchguard.logger import setup_logger
from patchguard.utils import format_interval, format_size, parse_interval


def resolve_game_path(config: Config) -> Path:
    """Configured game path if valid, otherwise auto-detect."""
    configured = config.game_path
    if configured and is_valid_game_path(configured):
        return configured
    return find_game_path(config.extra_game_paths)


def create_context(config: Config | None = None) -> AppContext:
    """Wire all services and return an AppContext."""
    config = config or get_config()

    # Logger
    setup_logger(config.data_dir / "logs", config.log_level)

    # Core services
    game_dir = resolve_game_path(config)
    backup_manager = BackupManager(
        BackupCatalog(config.catalog_path),
        data_dir=config.data_dir,
        game_dir=game_dir,
        game_version=config.game_version,
    )
    scheduler = BackupScheduler(backup_manager)
    backup_manager.subscribe_settings(scheduler.reschedule)

    return AppContext(config=config, backup_manager=backup_manager, scheduler=scheduler)


# ── Commands ──


def cmd_create(ctx: AppContext, args: argparse.Namespace) -> int:
    backup = ctx.backup_manager.create(args.description or "")
    print(f"Created {backup.id}: {len(backup.files)} file(s), {format_size(backup.total_size)}")
    return 0


def cmd_list(ctx: AppContext, args: argparse.Namespace) -> int:
    backups = ctx.backup_manager.list_backups()
    if not backups:
        print("No backups.")
        return 0
    for backup in reversed(backups):  # Newest first
        print(
            f"{backup.id}  {backup.timestamp:%Y-%m-%d %H:%M:%S}  {backup.type:<6}  "
            f"{len(backup.files):>4} file(s)  {format_size(backup.total_size):>9}  {backup.description}"
        )
    return 0


def cmd_show(ctx: AppContext, args: argparse.Namespace) -> int:
    backup = ctx.backup_manager.get_backup(args.backup_id)
    print(f"Backup ID:    {backup.id}")
    print(f"Type:         {backup.type}")
    print(f"Time:         {backup.timestamp:%Y-%m-%d %H:%M:%S}")
    print(f"Description:  {backup.description}")
    print(f"Game version: {backup.game_version}")
    print(f"Files:        {len(backup.files)} ({format_size(backup.total_size)})")
    for bf in backup.files:
        print(f"  {bf.hash[:12]}  {format_size(bf.size):>9}  {bf.path}")
    return 0


def cmd_verify(ctx: AppContext, args: argparse.Namespace) -> int:
    ctx.backup_manager.verify(args.backup_id)
    print(f"{args.backup_id}: all files intact")
    return 0


def cmd_restore(ctx: AppContext, args: argparse.Namespace) -> int:
    manager = ctx.backup_manager
    changes = manager.preview_restore(args.backup_id)
    overwrites = [c for c in changes if c.exists_locally and not c.unchanged]
    if not args.yes:
        print(
            f"Restoring {args.backup_id} writes {len(changes)} file(s) into {manager.game_dir}; "
            f"{len(overwrites)} existing file(s) will be overwritten."
        )
        if input("Continue? [y/N] ").strip().lower() not in ("y", "yes"):
            print("Aborted.")
            return 1
    result = manager.restore(args.backup_id)
    print(f"Restored {len(result.restored_files)} file(s) from {result.backup_id}")
    return 0


def cmd_delete(ctx: AppContext, args: argparse.Namespace) -> int:
    ctx.backup_manager.delete_backup(args.backup_id)
    print(f"Deleted {args.backup_id}")
    return 0


def cmd_settings(ctx: AppContext, args: argparse.Namespace) -> int:
    manager = ctx.backup_manager
    current = manager.settings
    changes: dict[str, object] = {}
    if args.auto is not None:
        changes["auto_backup"] = args.auto
    if args.interval is not None:
        changes["backup_interval"] = parse_interval(args.interval)
    if args.max is not None:
        changes["max_backups"] = args.max
    if args.path is not None:
        changes["backup_path"] = args.path
    if args.compression is not None:
        changes["compression_enabled"] = args.compression

    if changes:
        manager.update_settings(replace(current, **changes))
        current = manager.settings

    print(f"Auto backup:  {'on' if current.auto_backup else 'off'}")
    print(f"Interval:     {format_interval(current.backup_interval)}")
    print(f"Max backups:  {current.max_backups}")
    print(f"Backup path:  {current.backup_path} ({manager.backup_root})")
    print(f"Compression:  {'on' if current.compression_enabled else 'off'}")
    return 0


def cmd_locate(ctx: AppContext, args: argparse.Namespace) -> int:
    game_dir = ctx.backup_manager.game_dir
    status = "ok" if is_valid_game_path(game_dir) else "not found"
    print(f"{game_dir} ({status})")
    if args.save:
        ctx.config.game_path = game_dir
    return 0


def cmd_run(ctx: AppContext, args: argparse.Namespace) -> int:
    settings = ctx.backup_manager.settings
    if not settings.auto_backup:
        logger.warning("Auto backup is disabled; the scheduler will idle until it is enabled")
    ctx.scheduler.start()
    logger.info(f"Scheduler running every {format_interval(settings.backup_interval)}, Ctrl-C to stop")
    stop = threading.Event()
    try:
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        logger.info("Stopping scheduler")
    finally:
        ctx.scheduler.stop()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="patchguard", description="Patch file backup manager")
    parser.add_argument("--data-dir", type=Path, help="Data directory (config, catalog, backups)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("create", help="Create a manual backup")
    p.add_argument("-d", "--description", default="")
    p.set_defaults(func=cmd_create)

    p = sub.add_parser("list", help="List backups, newest first")
    p.set_defaults(func=cmd_list)

    for name, func, help_text in (
        ("show", cmd_show, "Show backup details"),
        ("verify", cmd_verify, "Check stored files against their digests"),
        ("delete", cmd_delete, "Delete a backup"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("backup_id")
        p.set_defaults(func=func)

    p = sub.add_parser("restore", help="Restore a backup over the game files")
    p.add_argument("backup_id")
    p.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    p.set_defaults(func=cmd_restore)

    p = sub.add_parser("settings", help="Show or change backup settings")
    p.add_argument("--auto", action=argparse.BooleanOptionalAction, default=None)
    p.add_argument("--interval", help="Seconds or preset: 30m, 1h, 2h, 4h, 8h, 12h, 24h")
    p.add_argument("--max", type=int)
    p.add_argument("--path", help="Backup store, relative to the data directory")
    p.add_argument("--compression", action=argparse.BooleanOptionalAction, default=None)
    p.set_defaults(func=cmd_settings)

    p = sub.add_parser("locate", help="Show the detected game directory")
    p.add_argument("--save", action="store_true", help="Remember it in config.json")
    p.set_defaults(func=cmd_locate)

    p = sub.add_parser("run", help="Run the auto-backup scheduler in the foreground")
    p.set_defaults(func=cmd_run)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)
    config = Config(args.data_dir) if args.data_dir else get_config()

    try:
        ctx = create_context(config)
        return args.func(ctx, args)
    except IntegrityError as e:
        logger.error(f"Backup file corrupted: {e.path}")
        return 2
    except (BackupError, ValueError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
