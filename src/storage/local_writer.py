# src/storage/local_writer.py - v5
"""Local filesystem output writer (default backend).

Blocking file I/O runs in worker threads so a large batch of writes does
not stall the event loop. Text writes go through a sibling temp file and
``os.replace``: an interrupted run never leaves a half-written SVG.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from pathlib import Path

from iconnormalizer.storage.base_output_writer import BaseOutputWriter

logger = logging.getLogger(__name__)


class LocalWriter(BaseOutputWriter):
    """Write outputs to the local filesystem."""

    async def write_text(self, path: Path, content: str) -> None:
        await asyncio.to_thread(_replace_text, path, content)

    async def copy_file(self, src: Path, dst: Path) -> None:
        if not src.is_file():
            raise FileNotFoundError(f"Not a file: {src}")
        dst.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copy2, src, dst)


def _replace_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug("Wrote %s (%d chars)", path, len(content))
