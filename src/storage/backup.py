# src/storage/backup.py - v1
"""Copy scanned inputs aside before a run touches anything."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from iconnormalizer.storage.base_output_writer import BaseOutputWriter
from iconnormalizer.storage.layout import BACKUP_DIR
from iconnormalizer.storage.local_writer import LocalWriter

logger = logging.getLogger(__name__)


def backup_dir(input_dir: Path, now: datetime | None = None) -> Path:
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%S")
    return input_dir / BACKUP_DIR / stamp


async def create_backup(
    input_dir: Path,
    files: Iterable[Path],
    writer: BaseOutputWriter | None = None,
    now: datetime | None = None,
) -> Path:
    """Copy ``files`` to ``<input>/backup/<timestamp>/``, keeping relative paths.

    The scanner excludes ``backup`` directories, so backups are never
    picked up as input on later runs.
    """
    writer = writer or LocalWriter()
    target = backup_dir(input_dir, now)
    count = 0
    for path in files:
        relative = path.relative_to(input_dir)
        await writer.copy_file(path, target / relative)
        count += 1
    logger.info("Backed up %d files to %s", count, target)
    return target
