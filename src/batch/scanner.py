# src/batch/scanner.py - v2
"""Batch scanner: icon discovery and item loading.

Scans a directory tree for SVG files, skipping excluded directory names
(backups, previous outputs, duplicate buckets), then reads and hashes each
file into an ``Item``. Unreadable files are logged and skipped.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from iconnormalizer.core.hashing import ContentHasher
from iconnormalizer.core.models import Item

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset({".svg"})
DEFAULT_EXCLUDE_DIRS: tuple[str, ...] = ("backup", "processed", "duplicates")


class IconScanner:
    """Discover icon files below a root directory."""

    def __init__(self, exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS) -> None:
        self._exclude = frozenset(exclude_dirs)

    def scan(self, scan_root: Path, recursive: bool = True) -> list[Path]:
        """List icon files in deterministic (sorted) order.

        Raises:
            ValueError: If ``scan_root`` is not a directory.
        """
        if not scan_root.is_dir():
            msg = f"Scan root is not a directory: {scan_root}"
            raise ValueError(msg)

        pattern_fn = scan_root.rglob if recursive else scan_root.glob
        files: list[Path] = []
        for path in sorted(pattern_fn("*")):
            if not path.is_file():
                continue
            if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
                continue
            rel_parts = path.relative_to(scan_root).parts[:-1]
            if any(part in self._exclude for part in rel_parts):
                continue
            files.append(path)

        logger.info(
            "Scanned %s: found %d icon files (recursive=%s)",
            scan_root, len(files), recursive,
        )
        return files


def load_items(
    paths: list[Path], hasher: ContentHasher,
) -> tuple[list[Item], list[str]]:
    """Read and hash each file.

    Returns:
        Tuple of (items in input order, error messages for skipped files).
    """
    items: list[Item] = []
    errors: list[str] = []
    for path in paths:
        try:
            raw = path.read_bytes()
        except OSError as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            errors.append(f"Failed to read {path}: {exc}")
            continue
        items.append(hasher.load(path, raw))
    logger.info("Loaded %d/%d icons", len(items), len(paths))
    return items, errors
