# src/logging/handlers.py - v3
"""Rotating file handler for run logs, sized from settings strings."""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_SIZE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([KMG]?B)", re.IGNORECASE)
_UNITS = {"B": 0, "KB": 1, "MB": 2, "GB": 3}


def parse_size(size_str: str) -> int:
    """``"10MB"`` → bytes. Units are binary (1KB = 1024B); fractions allowed."""
    match = _SIZE_RE.fullmatch(size_str.strip())
    if match is None:
        raise ValueError(f"Invalid size {size_str!r}, expected e.g. '512KB' or '10MB'")
    number, unit = match.groups()
    return int(float(number) * 1024 ** _UNITS[unit.upper()])


def create_rotating_handler(
    log_file: str | Path,
    rotation: str = "10MB",
    retention: int = 5,
) -> RotatingFileHandler:
    """Handler that rolls ``log_file`` over at ``rotation`` bytes.

    ``retention`` rotated files are kept; parents are created. The file is
    opened lazily on the first record.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
        delay=True,
    )
