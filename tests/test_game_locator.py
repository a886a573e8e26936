"""Tests for game directory discovery and tracked-file enumeration."""

from __future__ import annotations

from pathlib import Path

import pytest

from patchguard.core import game_locator
from patchguard.core.game_locator import (
    DEFAULT_GAME_PATH,
    find_game_path,
    is_valid_game_path,
    iter_tracked_files,
    resolve_target,
)


@pytest.fixture
def game_dir(tmp_path: Path) -> Path:
    game = tmp_path / "DNF"
    pack = game / "imagepack2"
    (pack / "nested" / "deeper").mkdir(parents=True)
    (pack / "b.npk").write_bytes(b"bb")
    (pack / "A.NPK").write_bytes(b"a")
    (pack / "nested" / "deeper" / "c.Npk").write_bytes(b"ccc")
    (pack / "notes.txt").write_text("skip", encoding="utf-8")
    (pack / "nested" / "d.npk.bak").write_bytes(b"skip")
    return game


class TestValidation:
    @pytest.mark.parametrize("indicator", ["DNF.exe", "Script.pvf"])
    def test_indicator_files(self, tmp_path: Path, indicator: str) -> None:
        (tmp_path / indicator).write_bytes(b"")
        assert is_valid_game_path(tmp_path)

    def test_imagepack_dir(self, game_dir: Path) -> None:
        assert is_valid_game_path(game_dir)

    def test_empty_dir(self, tmp_path: Path) -> None:
        assert not is_valid_game_path(tmp_path)


class TestFindGamePath:
    def test_prefers_extra_paths(self, game_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(game_locator, "COMMON_PATHS", [])
        assert find_game_path([str(game_dir)]) == game_dir

    def test_falls_back_to_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(game_locator, "COMMON_PATHS", [])
        monkeypatch.setattr(game_locator.platform, "system", lambda: "Linux")
        assert find_game_path([tmp_path / "nowhere"]) == DEFAULT_GAME_PATH


class TestIterTrackedFiles:
    def test_case_insensitive_extension(self, game_dir: Path) -> None:
        found = [f.relative_path for f in iter_tracked_files(game_dir)]
        assert found == [
            "imagepack2/A.NPK",
            "imagepack2/b.npk",
            "imagepack2/nested/deeper/c.Npk",
        ]

    def test_sizes_and_paths(self, game_dir: Path) -> None:
        by_rel = {f.relative_path: f for f in iter_tracked_files(game_dir)}
        entry = by_rel["imagepack2/nested/deeper/c.Npk"]
        assert entry.size == 3
        assert entry.path == game_dir / "imagepack2" / "nested" / "deeper" / "c.Npk"

    def test_missing_imagepack(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            list(iter_tracked_files(tmp_path))


class TestResolveTarget:
    def test_maps_posix_relative_path(self, tmp_path: Path) -> None:
        assert resolve_target(tmp_path, "imagepack2/a/b.npk") == tmp_path / "imagepack2" / "a" / "b.npk"

    @pytest.mark.parametrize("bad", ["../escape.npk", "/etc/passwd", "imagepack2/../../x.npk"])
    def test_rejects_escaping_paths(self, tmp_path: Path, bad: str) -> None:
        with pytest.raises(ValueError):
            resolve_target(tmp_path, bad)
