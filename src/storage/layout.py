# src/storage/layout.py - v3
"""Output directory structure.

Results are partitioned by model so runs with different backends never
overwrite each other::

    {output_dir}/{model_slug}/
        unique/                  classified unique icons (and group primaries)
        duplicates/              duplicate members, tagged "duplicate"
        duplicate-report.txt
        analysis-summary.json
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path

UNIQUE_DIR = "unique"
DUPLICATES_DIR = "duplicates"
REPORT_FILE = "duplicate-report.txt"
SUMMARY_FILE = "analysis-summary.json"
BACKUP_DIR = "backup"

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]")


def model_slug(model: str) -> str:
    """Filesystem-safe form of a model identifier.

    Identifiers that are already safe are used as-is. Any other identifier
    is sanitized and suffixed with a short digest of the original, so
    ``llava:13b`` and ``llava/13b`` land in different directories.
    """
    if not model:
        return "default"
    safe = _UNSAFE_RE.sub("_", model)
    if safe == model and model not in (".", ".."):
        return model
    digest = hashlib.sha256(model.encode("utf-8")).hexdigest()[:8]
    return f"{safe}-{digest}"


def model_root(output_path: Path, model: str) -> Path:
    return output_path / model_slug(model)


def unique_dir(output_path: Path, model: str) -> Path:
    return model_root(output_path, model) / UNIQUE_DIR


def duplicates_dir(output_path: Path, model: str) -> Path:
    return model_root(output_path, model) / DUPLICATES_DIR


def report_path(output_path: Path, model: str) -> Path:
    return model_root(output_path, model) / REPORT_FILE


def summary_path(output_path: Path, model: str) -> Path:
    return model_root(output_path, model) / SUMMARY_FILE
