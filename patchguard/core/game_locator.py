"""Game directory discovery and tracked-file enumeration."""

from __future__ import annotations

import os
import platform
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from loguru import logger

DEFAULT_GAME_PATH = Path("C:\\Wegame\\WeGame\\games\\DNF")
IMAGEPACK_DIR = "imagepack2"
TRACKED_EXTENSION = ".npk"

# Files/folders whose presence marks a game installation
_INDICATORS = ("DNF.exe", IMAGEPACK_DIR, "Script.pvf")

_WEGAME_SUFFIX = Path("Wegame", "WeGame", "games", "DNF")

COMMON_PATHS = [
    Path("C:\\Wegame\\WeGame\\games\\DNF"),
    Path("D:\\Wegame\\WeGame\\games\\DNF"),
    Path("E:\\Wegame\\WeGame\\games\\DNF"),
    Path("C:\\Program Files\\Wegame\\WeGame\\games\\DNF"),
    Path("C:\\Program Files (x86)\\Wegame\\WeGame\\games\\DNF"),
    Path("D:\\Program Files\\Wegame\\WeGame\\games\\DNF"),
    Path("D:\\Program Files (x86)\\Wegame\\WeGame\\games\\DNF"),
]


@dataclass
class TrackedFile:
    """A patch file found in the live game directory."""

    path: Path
    relative_path: str  # POSIX form, relative to the game directory
    size: int


def is_valid_game_path(path: str | Path) -> bool:
    """Return True if *path* looks like a game installation."""
    path = Path(path)
    return any((path / indicator).exists() for indicator in _INDICATORS)


def _candidates_under_drive(root: Path) -> list[Path]:
    return [
        root / _WEGAME_SUFFIX,
        root / "Program Files" / _WEGAME_SUFFIX,
        root / "Program Files (x86)" / _WEGAME_SUFFIX,
    ]


def find_game_path(extra_paths: Iterable[str | Path] = ()) -> Path:
    """
    Locate the game installation.

    Checks configured paths first, then the common WeGame locations, then
    (on Windows) every drive letter. Falls back to the default path.
    """
    for candidate in [*map(Path, extra_paths), *COMMON_PATHS]:
        if is_valid_game_path(candidate):
            logger.debug(f"Found game directory: {candidate}")
            return candidate

    if platform.system() == "Windows":
        for drive in "CDEFGHIJKLMNOPQRSTUVWXYZ":
            for candidate in _candidates_under_drive(Path(f"{drive}:\\")):
                if is_valid_game_path(candidate):
                    logger.debug(f"Found game directory: {candidate}")
                    return candidate

    logger.warning(f"Game directory not found, falling back to {DEFAULT_GAME_PATH}")
    return DEFAULT_GAME_PATH


def iter_tracked_files(game_dir: Path) -> Iterator[TrackedFile]:
    """
    Yield every ``.npk`` file under ``<game_dir>/imagepack2``.

    Walk order is sorted so snapshots list files deterministically.
    Walk errors propagate as OSError.
    """
    source = game_dir / IMAGEPACK_DIR
    if not source.is_dir():
        raise FileNotFoundError(f"Patch directory not found: {source}")

    def _raise(err: OSError) -> None:
        raise err

    for dirpath, dirnames, filenames in os.walk(source, onerror=_raise):
        dirnames.sort()
        for name in sorted(filenames):
            if not name.lower().endswith(TRACKED_EXTENSION):
                continue
            path = Path(dirpath) / name
            if not path.is_file():
                continue
            yield TrackedFile(
                path=path,
                relative_path=path.relative_to(game_dir).as_posix(),
                size=path.stat().st_size,
            )


def resolve_target(game_dir: Path, relative_path: str) -> Path:
    """Map a recorded relative path back onto the live game directory."""
    rel = PurePosixPath(relative_path)
    if rel.is_absolute() or ".." in rel.parts:
        raise ValueError(f"Refusing path outside the game directory: {relative_path}")
    return game_dir.joinpath(*rel.parts)
