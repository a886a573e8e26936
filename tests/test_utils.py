"""Tests for shared helpers."""

from __future__ import annotations

import pytest

from patchguard.utils import format_interval, format_size, parse_interval


class TestIntervals:
    @pytest.mark.parametrize(
        ("text", "seconds"),
        [("30m", 1800), ("1h", 3600), ("24H", 86400), ("90", 90), ("45s", 45)],
    )
    def test_parse(self, text: str, seconds: int) -> None:
        assert parse_interval(text) == seconds

    @pytest.mark.parametrize("text", ["soon", "0", "-5"])
    def test_parse_invalid(self, text: str) -> None:
        with pytest.raises(ValueError):
            parse_interval(text)

    def test_format(self) -> None:
        assert format_interval(7200) == "2h"
        assert format_interval(90) == "90s"


class TestFormatSize:
    def test_units(self) -> None:
        assert format_size(512) == "512 B"
        assert format_size(2048) == "2.0 KB"
        assert format_size(5 * 1024 * 1024) == "5.0 MB"
