"""Shared utility functions."""

from __future__ import annotations

from patchguard.models.backup import INTERVAL_PRESETS


def format_size(size_bytes: int) -> str:
    """Format byte count to human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.2f} GB"


def format_interval(seconds: int) -> str:
    """Render an interval as its preset label when it has one."""
    for label, value in INTERVAL_PRESETS.items():
        if value == seconds:
            return label
    return f"{seconds}s"


def parse_interval(text: str) -> int:
    """Parse a preset label (``30m``, ``1h`` …) or a plain number of seconds."""
    text = text.strip().lower()
    if text in INTERVAL_PRESETS:
        return INTERVAL_PRESETS[text]
    if text.endswith("s"):
        text = text[:-1]
    try:
        seconds = int(text)
    except ValueError:
        choices = ", ".join(INTERVAL_PRESETS)
        raise ValueError(f"Invalid interval '{text}' (use seconds or one of: {choices})") from None
    if seconds < 1:
        raise ValueError(f"Interval must be positive, got {seconds}")
    return seconds
