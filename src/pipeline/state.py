# src/pipeline/state.py - v3
"""Run state accumulated by the orchestrator, and the outcome it returns."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from iconnormalizer.core.models import (
    BatchSummary,
    ClassificationRecord,
    DuplicateGroup,
    Item,
    ItemResult,
)


class RunStage(str, Enum):
    SCANNING = "scanning"
    HASHING = "hashing"
    DEDUPING = "deduping"
    CLASSIFYING = "classifying"
    EMBEDDING = "embedding"
    SUMMARIZING = "summarizing"
    DONE = "done"
    FAILED = "failed"


class RunState(BaseModel):
    """Mutable state filled in stage by stage during one run."""

    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    input_dir: Path
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    stage: RunStage = RunStage.SCANNING

    paths: list[Path] = Field(default_factory=list)
    items: list[Item] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    groups: list[DuplicateGroup] = Field(default_factory=list)
    records: dict[str, ClassificationRecord] = Field(default_factory=dict)
    written: list[Path] = Field(default_factory=list)
    backup_path: Path | None = None
    cancelled: bool = False


class RunOutcome(BaseModel):
    """What a run produced. ``summary`` is None only for cancelled runs.

    A cancelled run still reports the items classified before it stopped in
    ``partial_results``, out of ``pending_items`` that were due; none of
    them were written.
    """

    run_id: str
    stage: RunStage
    summary: BatchSummary | None = None
    output_root: Path | None = None
    backup_path: Path | None = None
    cancelled: bool = False
    no_work: bool = False
    dry_run: bool = False
    partial_results: list[ItemResult] = Field(default_factory=list)
    pending_items: int = 0

    @property
    def succeeded(self) -> bool:
        return self.stage is RunStage.DONE and not self.cancelled
