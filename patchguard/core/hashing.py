"""Content digests for backed-up files."""

from __future__ import annotations

import hashlib
from pathlib import Path

from patchguard.errors import BackupIOError

_CHUNK_SIZE = 64 * 1024


def file_digest(path: str | Path) -> str:
    """Compute the SHA-256 hex digest of a file's full contents."""
    h = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                h.update(chunk)
    except OSError as e:
        raise BackupIOError(f"Failed to hash {path}: {e}") from e
    return h.hexdigest()
