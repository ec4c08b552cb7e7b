# src/metadata/codec.py - v2
"""Embed classification results in SVG bodies as XML comments.

Block layout, one comment per line, placed right after the opening
``<svg ...>`` tag (or at the top when there is none)::

    <!-- Icon Analysis Metadata -->
    <!-- Category: navigation -->
    <!-- Tags: home, house -->
    <!-- Confidence: 0.90 -->
    <!-- Processed: 2024-01-01T00:00:00+00:00 -->
    <!-- Version: 1.0.0 -->

Tags are joined with ``", "``, so a round trip is exact for tags that
contain neither newlines nor that separator.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from iconnormalizer.core.models import ClassificationRecord, PartialRecord
from iconnormalizer.version import METADATA_VERSION

logger = logging.getLogger(__name__)

HEADER = "<!-- Icon Analysis Metadata -->"
TAG_SEPARATOR = ", "

_SVG_OPEN_RE = re.compile(r"<svg\b[^>]*>", re.IGNORECASE)
_BLOCK_RE = re.compile(
    re.escape(HEADER)
    + r"(?:\r?\n<!-- (?:Category|Tags|Confidence|Processed|Version): [^\n]*? -->)*"
)
_FIELD_RES = {
    "category": re.compile(r"<!-- Category: (.+?) -->"),
    "tags": re.compile(r"<!-- Tags: (.*?) -->"),
    "confidence": re.compile(r"<!-- Confidence: (.+?) -->"),
    "processed_at": re.compile(r"<!-- Processed: (.+?) -->"),
    "version": re.compile(r"<!-- Version: (.+?) -->"),
}


class MetadataCodec:
    """Reversible metadata comment block."""

    def __init__(self, version: str = METADATA_VERSION) -> None:
        self._version = version

    def render_block(self, record: ClassificationRecord, processed_at: datetime) -> str:
        return "\n".join([
            HEADER,
            f"<!-- Category: {record.category} -->",
            f"<!-- Tags: {TAG_SEPARATOR.join(record.tags)} -->",
            f"<!-- Confidence: {record.confidence:.2f} -->",
            f"<!-- Processed: {processed_at.isoformat()} -->",
            f"<!-- Version: {self._version} -->",
        ])

    def embed(
        self,
        raw: str,
        record: ClassificationRecord,
        processed_at: datetime | None = None,
    ) -> str:
        """Return ``raw`` with the metadata block for ``record`` inserted.

        An existing block is replaced rather than duplicated.
        """
        block = self.render_block(record, processed_at or datetime.now(timezone.utc))
        body = self.strip(raw)

        match = _SVG_OPEN_RE.search(body)
        if match is None:
            return f"{block}\n{body}"
        end = match.end()
        return f"{body[:end]}\n{block}{body[end:]}"

    def strip(self, raw: str) -> str:
        """Remove an embedded metadata block, if any."""
        match = _BLOCK_RE.search(raw)
        if match is None:
            return raw
        start, end = match.span()
        if start > 0 and raw[start - 1] == "\n":
            start -= 1
        elif end < len(raw) and raw[end] == "\n":
            end += 1
        return raw[:start] + raw[end:]

    def extract(self, raw: str) -> PartialRecord:
        """Recover whatever metadata fields are present; absent ones stay None."""
        found: dict[str, object] = {}

        if match := _FIELD_RES["category"].search(raw):
            found["category"] = match.group(1).strip()

        if match := _FIELD_RES["tags"].search(raw):
            value = match.group(1).strip()
            found["tags"] = [t.strip() for t in value.split(TAG_SEPARATOR) if t.strip()] if value else []

        if match := _FIELD_RES["confidence"].search(raw):
            try:
                found["confidence"] = float(match.group(1))
            except ValueError:
                logger.warning("Ignoring malformed confidence %r", match.group(1))

        if match := _FIELD_RES["processed_at"].search(raw):
            try:
                found["processed_at"] = datetime.fromisoformat(match.group(1).strip())
            except ValueError:
                logger.warning("Ignoring malformed timestamp %r", match.group(1))

        if match := _FIELD_RES["version"].search(raw):
            found["version"] = match.group(1).strip()

        return PartialRecord(**found)
