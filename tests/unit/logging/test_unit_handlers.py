# tests/unit/logging/test_unit_handlers.py - v3
"""Tests for logging/handlers.py - file rotation handler."""

from __future__ import annotations

import pytest

from iconnormalizer.logging.handlers import create_rotating_handler, parse_size


class TestParseSize:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("300B", 300),
            ("512KB", 512 * 1024),
            ("10MB", 10 * 1024 * 1024),
            ("1GB", 1024 ** 3),
            (" 10 mb ", 10 * 1024 * 1024),
            ("1.5KB", 1536),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_size(text) == expected

    @pytest.mark.parametrize("text", ["10bytes", "", "MB", "10TB"])
    def test_invalid(self, text):
        with pytest.raises(ValueError, match="Invalid size"):
            parse_size(text)


class TestCreateRotatingHandler:
    def test_limits_from_settings_strings(self, tmp_path):
        handler = create_rotating_handler(tmp_path / "run.log", rotation="1MB", retention=5)
        assert handler.maxBytes == 1024 * 1024
        assert handler.backupCount == 5
        handler.close()

    def test_creates_parent_dirs_but_not_file(self, tmp_path):
        log_file = tmp_path / "subdir" / "deep" / "run.log"
        handler = create_rotating_handler(str(log_file))
        assert log_file.parent.is_dir()
        assert not log_file.exists()
        handler.close()
