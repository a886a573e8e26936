"""Tests for file digests."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path

import pytest

from patchguard.core.hashing import file_digest
from patchguard.errors import BackupIOError


class TestFileDigest:
    def test_known_vector(self, tmp_path: Path) -> None:
        path = tmp_path / "abc.npk"
        path.write_bytes(b"abc")
        assert file_digest(path) == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.npk"
        path.write_bytes(b"")
        assert file_digest(path) == hashlib.sha256(b"").hexdigest()

    def test_multi_chunk_file(self, tmp_path: Path) -> None:
        payload = os.urandom(300 * 1024 + 7)
        path = tmp_path / "big.npk"
        path.write_bytes(payload)
        assert file_digest(path) == hashlib.sha256(payload).hexdigest()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(BackupIOError):
            file_digest(tmp_path / "missing.npk")
