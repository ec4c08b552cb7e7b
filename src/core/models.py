# src/core/models.py - v3
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_TAGS = 5

Disposition = Literal["remove", "keep", "review"]


# === INPUT ===


class Item(BaseModel):
    """One scanned icon file and its derived identity."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    path: Path
    raw_content: str
    byte_size: int
    content_digest: str
    perceptual_hash: str | None = None


# === DEDUPLICATION ===


class DuplicateGroup(BaseModel):
    """A primary item plus the items considered redundant with it."""

    model_config = ConfigDict(frozen=True)

    primary: Item
    members: list[Item]
    similarity_score: float = Field(ge=0.0, le=1.0)
    disposition: Disposition

    @property
    def is_exact(self) -> bool:
        return self.disposition == "remove"

    @property
    def item_ids(self) -> list[str]:
        return [self.primary.id] + [m.id for m in self.members]


# === CLASSIFICATION ===


class ClassificationRecord(BaseModel):
    """Category/tags/confidence assigned to one unique item.

    ``failed`` is set only when the item could not be analysed; the category
    alone never marks a failure.
    """

    model_config = ConfigDict(frozen=True)

    category: str
    tags: list[str] = Field(default_factory=list)
    confidence: float = 0.5
    reasoning: str = ""
    failed: bool = False

    @field_validator("tags", mode="before")
    @classmethod
    def _truncate_tags(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        tags = [str(t).strip() for t in v if str(t).strip()]
        return tags[:MAX_TAGS]

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: Any) -> float:
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 0.5
        if value != value:  # NaN
            return 0.0
        return max(0.0, min(1.0, value))


class PartialRecord(BaseModel):
    """Metadata recovered from an embedded comment block; all fields optional."""

    category: str | None = None
    tags: list[str] | None = None
    confidence: float | None = None
    processed_at: datetime | None = None
    version: str | None = None

    def present_fields(self) -> dict[str, Any]:
        """Return only the fields found in the content."""
        return self.model_dump(exclude_none=True)


# === RUN OUTPUT ===


class ItemResult(BaseModel):
    """An item's identity joined with its classification or duplicate disposition."""

    item_id: str
    display_name: str
    path: str
    status: Literal["classified", "duplicate", "error"]
    record: ClassificationRecord | None = None
    duplicate_of: str | None = None
    similarity: float | None = None
    disposition: Disposition | None = None


class BatchSummary(BaseModel):
    """Terminal structured report of one pipeline run."""

    generated_at: datetime
    provider_id: str
    total_items: int
    unique_items: int
    duplicate_items: int
    category_counts: dict[str, int] = Field(default_factory=dict)
    per_item: list[ItemResult] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    duration_seconds: float = 0.0
