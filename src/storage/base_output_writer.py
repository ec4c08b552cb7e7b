# src/storage/base_output_writer.py - v4
"""Abstract output sink for processed icons and run reports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class BaseOutputWriter(ABC):
    """Where a run puts annotated icons, backups and reports.

    Paths are absolute; implementations create parent directories.
    """

    @abstractmethod
    async def write_text(self, path: Path, content: str) -> None:
        """Write UTF-8 text, replacing any existing file."""

    @abstractmethod
    async def copy_file(self, src: Path, dst: Path) -> None:
        """Copy one file byte-for-byte, preserving its timestamps."""
