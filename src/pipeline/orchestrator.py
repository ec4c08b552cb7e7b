# src/pipeline/orchestrator.py - v3
"""Batch orchestrator.

Drives one run through its stages:
  SCANNING     discover icons (and back them up)
  HASHING      read files into immutable Items with digests and pHashes
  DEDUPING     partition into exact / near duplicate groups
  CLASSIFYING  classify unique items and group primaries, windowed
  EMBEDDING    write annotated copies into the model's output area
  SUMMARIZING  build and write the summary and duplicate report

Any fatal error moves the run to FAILED and is re-raised to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path

from iconnormalizer.batch.dedup import DuplicateDetector
from iconnormalizer.batch.report import generate_report
from iconnormalizer.batch.scanner import IconScanner, load_items
from iconnormalizer.classification.provider import BaseClassificationProvider
from iconnormalizer.config.settings import Settings
from iconnormalizer.config.taxonomy import DUPLICATE_CATEGORY
from iconnormalizer.core.hashing import ContentHasher
from iconnormalizer.core.models import (
    BatchSummary,
    ClassificationRecord,
    DuplicateGroup,
    Item,
    ItemResult,
)
from iconnormalizer.logging.context import set_run_context, set_stage_context
from iconnormalizer.metadata.codec import MetadataCodec
from iconnormalizer.pipeline.state import RunOutcome, RunStage, RunState
from iconnormalizer.render.rasterizer import BaseRenderer, SvgRasterizer
from iconnormalizer.storage import layout
from iconnormalizer.storage.backup import create_backup
from iconnormalizer.storage.base_output_writer import BaseOutputWriter
from iconnormalizer.storage.local_writer import LocalWriter

logger = logging.getLogger(__name__)


def duplicate_record(primary: Item) -> ClassificationRecord:
    """Synthetic record embedded in duplicate members."""
    return ClassificationRecord(
        category=DUPLICATE_CATEGORY,
        tags=[],
        confidence=1.0,
        reasoning=f"Duplicate of {primary.display_name}",
    )


class Orchestrator:
    """Run the full dedup → classify → embed → summarize pipeline.

    Args:
        settings: Frozen application settings.
        provider: Classification provider selected for this run.
        renderer: Rasterizer used for perceptual hashing.
        writer: Output backend (local filesystem by default).
    """

    def __init__(
        self,
        settings: Settings,
        provider: BaseClassificationProvider,
        renderer: BaseRenderer | None = None,
        writer: BaseOutputWriter | None = None,
    ) -> None:
        self._settings = settings
        self._provider = provider
        self._writer = writer or LocalWriter()
        self._hasher = ContentHasher(renderer or SvgRasterizer())
        self._detector = DuplicateDetector(
            similarity_threshold=settings.similarity_threshold,
            bucket_bytes=settings.near_duplicate_bucket_bytes,
        )
        self._codec = MetadataCodec()

    async def run(
        self,
        input_dir: Path,
        cancel_event: asyncio.Event | None = None,
    ) -> RunOutcome:
        """Process every icon below ``input_dir``.

        Raises:
            ProviderConfigurationError: Backend misconfigured; run is FAILED.
            ValueError: ``input_dir`` is not a directory.
        """
        state = RunState(input_dir=input_dir)
        set_run_context(state.run_id)
        start = time.monotonic()
        logger.info(
            "Run %s started on %s with %s", state.run_id, input_dir, self._provider.provider_id,
        )

        try:
            self._enter(state, RunStage.SCANNING)
            state.paths = self._scanner(input_dir).scan(input_dir)
            if not state.paths:
                logger.info("No icon files found in %s, nothing to do", input_dir)
                state.stage = RunStage.DONE
                return self._outcome(state, self._summarize(state, start), no_work=True)
            if self._settings.backup and not self._settings.dry_run:
                state.backup_path = await create_backup(input_dir, state.paths, self._writer)

            self._enter(state, RunStage.HASHING)
            state.items, state.errors = await asyncio.to_thread(
                load_items, state.paths, self._hasher
            )

            self._enter(state, RunStage.DEDUPING)
            state.groups = self._detector.find_duplicates(state.items)

            self._enter(state, RunStage.CLASSIFYING)
            pending = self._classification_set(state)
            state.records = await self._provider.classify_batch(pending, cancel_event)
            if cancel_event is not None and cancel_event.is_set():
                state.cancelled = True
                logger.warning(
                    "Run %s cancelled after classifying %d/%d items, nothing written",
                    state.run_id, len(state.records), len(pending),
                )
                partial = [
                    self._classified_result(item, state.records[item.id])
                    for item in pending if item.id in state.records
                ]
                return self._outcome(
                    state, None, partial_results=partial, pending_items=len(pending),
                )

            self._enter(state, RunStage.EMBEDDING)
            if not self._settings.dry_run:
                await self._embed(state, pending)

            self._enter(state, RunStage.SUMMARIZING)
            summary = self._summarize(state, start)
            if not self._settings.dry_run:
                await self._write_summary(summary, state.groups)

            state.stage = RunStage.DONE
            set_stage_context(None)
            logger.info(
                "Run %s done: %d items, %d unique, %d duplicates in %.1fs",
                state.run_id, summary.total_items, summary.unique_items,
                summary.duplicate_items, summary.duration_seconds,
            )
            return self._outcome(state, summary)

        except Exception:
            state.stage = RunStage.FAILED
            logger.exception("Run %s failed", state.run_id)
            raise

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    @staticmethod
    def _enter(state: RunState, stage: RunStage) -> None:
        state.stage = stage
        set_stage_context(stage.value)
        logger.debug("Entering stage %s", stage.value)

    def _scanner(self, input_dir: Path) -> IconScanner:
        exclude = set(self._settings.exclude_dirs_list)
        exclude.add(self._settings.output_dir.name)
        return IconScanner(exclude_dirs=exclude)

    @staticmethod
    def _member_paths(groups: list[DuplicateGroup]) -> dict[Path, DuplicateGroup]:
        return {member.path: group for group in groups for member in group.members}

    def _classification_set(self, state: RunState) -> list[Item]:
        """Unique items plus group primaries, in scan order."""
        members = self._member_paths(state.groups)
        return [item for item in state.items if item.path not in members]

    async def _embed(self, state: RunState, classified: list[Item]) -> None:
        processed_at = datetime.now(timezone.utc)
        output = self._settings.output_dir
        model = self._provider.model

        used: set[str] = set()
        target_dir = layout.unique_dir(output, model)
        for item in classified:
            record = state.records.get(item.id)
            if record is None:
                continue
            if record.failed:
                content = item.raw_content
            else:
                content = self._codec.embed(item.raw_content, record, processed_at)
            state.written.append(await self._write_item(target_dir, item, content, used))

        used = set()
        target_dir = layout.duplicates_dir(output, model)
        for group in state.groups:
            record = duplicate_record(group.primary)
            for member in group.members:
                content = self._codec.embed(member.raw_content, record, processed_at)
                state.written.append(await self._write_item(target_dir, member, content, used))

        logger.info("Wrote %d files under %s", len(state.written), layout.model_root(output, model))

    async def _write_item(
        self, target_dir: Path, item: Item, content: str, used: set[str],
    ) -> Path:
        name = item.display_name
        if name in used:
            name = f"{item.id}-{name}"
        used.add(name)
        path = target_dir / name
        await self._writer.write_text(path, content)
        return path

    def _summarize(self, state: RunState, start: float) -> BatchSummary:
        members = self._member_paths(state.groups)
        dup_record: dict[str, ClassificationRecord] = {}
        per_item: list[ItemResult] = []
        counts: Counter[str] = Counter()

        for item in state.items:
            group = members.get(item.path)
            if group is not None:
                record = dup_record.setdefault(group.primary.id, duplicate_record(group.primary))
                per_item.append(ItemResult(
                    item_id=item.id,
                    display_name=item.display_name,
                    path=str(item.path),
                    status="duplicate",
                    record=record,
                    duplicate_of=group.primary.id,
                    similarity=group.similarity_score,
                    disposition=group.disposition,
                ))
                continue

            record = state.records.get(item.id)
            if record is not None:
                counts[record.category] += 1
            per_item.append(self._classified_result(item, record))

        return BatchSummary(
            generated_at=datetime.now(timezone.utc),
            provider_id=self._provider.provider_id,
            total_items=len(state.items),
            unique_items=len(state.items) - len(members),
            duplicate_items=len(members),
            category_counts=dict(counts),
            per_item=per_item,
            errors=list(state.errors),
            duration_seconds=round(time.monotonic() - start, 3),
        )

    @staticmethod
    def _classified_result(item: Item, record: ClassificationRecord | None) -> ItemResult:
        return ItemResult(
            item_id=item.id,
            display_name=item.display_name,
            path=str(item.path),
            status="error" if record is None or record.failed else "classified",
            record=record,
        )

    async def _write_summary(self, summary: BatchSummary, groups: list[DuplicateGroup]) -> None:
        output = self._settings.output_dir
        model = self._provider.model
        await self._writer.write_text(
            layout.summary_path(output, model), summary.model_dump_json(indent=2),
        )
        await self._writer.write_text(layout.report_path(output, model), generate_report(groups))

    def _outcome(
        self,
        state: RunState,
        summary: BatchSummary | None,
        no_work: bool = False,
        partial_results: list[ItemResult] | None = None,
        pending_items: int = 0,
    ) -> RunOutcome:
        return RunOutcome(
            run_id=state.run_id,
            stage=state.stage,
            summary=summary,
            output_root=layout.model_root(self._settings.output_dir, self._provider.model),
            backup_path=state.backup_path,
            cancelled=state.cancelled,
            no_work=no_work,
            dry_run=self._settings.dry_run,
            partial_results=partial_results or [],
            pending_items=pending_items,
        )
