# src/classification/response_parser.py - v2
"""Turn a free-form model reply into a ClassificationRecord.

``parse`` is total: it never raises and always returns a record.
  1. Strip wrappers (code fences, "json" prefix, surrounding prose) and
     decode the JSON object between the first "{" and its closing "}".
  2. If that fails or carries neither category nor tags, extract
     ``category:``, ``confidence:`` and ``tags:`` patterns line by line and
     scan for taxonomy keywords in the text.
  3. If still no tags, assign a generic tag set at low confidence.

The reserved categories ``error`` and ``duplicate`` are never taken from a
model reply; they map to the default category.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping

from iconnormalizer.config.taxonomy import (
    DEFAULT_CATEGORY,
    DEFAULT_TAXONOMY,
    RESERVED_CATEGORIES,
)
from iconnormalizer.core.models import MAX_TAGS, ClassificationRecord

logger = logging.getLogger(__name__)

FALLBACK_TAGS: tuple[str, ...] = ("icon", "ui", "interface")
FALLBACK_CONFIDENCE = 0.3
KEYWORD_CONFIDENCE = 0.4
DEFAULT_CONFIDENCE = 0.5

ICON_KEYWORDS: tuple[str, ...] = (
    "icon", "button", "navigation", "arrow", "home", "user", "search",
    "menu", "settings", "close", "check", "delete", "edit", "add",
)
# Matched as plain substrings: CJK text has no word boundaries.
CJK_ICON_KEYWORDS: tuple[str, ...] = (
    "图标", "按钮", "导航", "箭头", "主页", "用户", "搜索", "菜单",
)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_JSON_PREFIX_RE = re.compile(r"^\s*json\s*", re.IGNORECASE)
_CATEGORY_RE = re.compile(
    r"categor(?:y|ies)[\"']?\s*[:：]\s*[\"']?([A-Za-z_-]+)", re.IGNORECASE,
)
_CONFIDENCE_RE = re.compile(
    r"confidence[\"']?\s*[:：]\s*[\"']?([0-9]+(?:\.[0-9]+)?)\s*(%?)", re.IGNORECASE,
)
_TAGS_RE = re.compile(r"tags?[\"']?\s*[:：]\s*(\[[^\]]*\]?|.+)", re.IGNORECASE)
_TAG_SPLIT_RE = re.compile(r"[,\s，、]+")
_TAG_STRIP = "\"'[]{}().:"
_REASONING_MARKERS = ("reason", "because", "说明", "理由")


def _normalize_confidence(value: Any, percent: bool = False) -> float | None:
    if isinstance(value, str) and value.strip().endswith("%"):
        value, percent = value.strip()[:-1], True
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if percent or number > 1:
        number /= 100
    return max(0.0, min(1.0, number))


class ResponseParser:
    """Staged parser for classification replies."""

    def __init__(
        self,
        taxonomy: Mapping[str, tuple[str, ...]] = DEFAULT_TAXONOMY,
        default_category: str = DEFAULT_CATEGORY,
    ) -> None:
        self._categories = list(taxonomy.keys())
        self._default_category = default_category

    def _accept_category(self, category: str) -> str:
        category = category.strip()
        if not category or category.lower() in RESERVED_CATEGORIES:
            return self._default_category
        return category

    def parse(self, raw_text: str | None) -> ClassificationRecord:
        text = raw_text or ""
        parsed = self._decode_json(text)
        if parsed is not None and (parsed.get("category") or parsed.get("tags")):
            return self._from_json(parsed)

        if text.strip():
            logger.warning(
                "No usable JSON in model reply, extracting fields from text: %.200s", text,
            )
        return self._from_text(text)

    # ------------------------------------------------------------------
    # Tier 1: structured
    # ------------------------------------------------------------------

    def _decode_json(self, text: str) -> dict[str, Any] | None:
        cleaned = _FENCE_RE.sub("", text).strip()
        cleaned = _JSON_PREFIX_RE.sub("", cleaned, count=1)
        start = cleaned.find("{")
        if start == -1:
            return None

        decoder = json.JSONDecoder()
        try:
            obj, _ = decoder.raw_decode(cleaned, start)
        except (json.JSONDecodeError, RecursionError):
            end = cleaned.rfind("}")
            if end <= start:
                return None
            try:
                obj = json.loads(cleaned[start:end + 1])
            except (json.JSONDecodeError, RecursionError):
                return None
        return obj if isinstance(obj, dict) else None

    def _from_json(self, parsed: dict[str, Any]) -> ClassificationRecord:
        category = self._accept_category(str(parsed.get("category") or ""))

        raw_tags = parsed.get("tags")
        if isinstance(raw_tags, list):
            tags = [str(t).strip() for t in raw_tags if str(t).strip()]
        elif isinstance(raw_tags, str):
            tags = [t.strip() for t in raw_tags.split(",") if t.strip()]
        else:
            tags = []

        confidence = _normalize_confidence(parsed.get("confidence"))
        reasoning = parsed.get("reasoning")
        return ClassificationRecord(
            category=category,
            tags=tags[:MAX_TAGS],
            confidence=DEFAULT_CONFIDENCE if confidence is None else confidence,
            reasoning=str(reasoning) if reasoning else "Parsed from model response",
        )

    # ------------------------------------------------------------------
    # Tiers 2 and 3: text extraction, then generic fallback
    # ------------------------------------------------------------------

    def _from_text(self, text: str) -> ClassificationRecord:
        category: str | None = None
        confidence: float | None = None
        tags: list[str] = []
        reasoning_lines: list[str] = []

        for line in text.splitlines():
            if match := _CATEGORY_RE.search(line):
                category = match.group(1).lower()
            if match := _CONFIDENCE_RE.search(line):
                confidence = _normalize_confidence(match.group(1), bool(match.group(2)))
            if match := _TAGS_RE.search(line):
                for token in _TAG_SPLIT_RE.split(match.group(1)):
                    tag = token.strip(_TAG_STRIP)
                    if len(tag) > 1:
                        tags.append(tag)
            if any(marker in line.lower() for marker in _REASONING_MARKERS):
                reasoning_lines.append(line.strip())

        lowered = text.lower()
        if category is None:
            for cat in self._categories:
                if re.search(rf"\b{re.escape(cat.lower())}\b", lowered):
                    category = cat
                    if confidence is None:
                        confidence = KEYWORD_CONFIDENCE
                    break

        if not tags:
            for keyword in ICON_KEYWORDS:
                if re.search(rf"\b{keyword}\b", lowered):
                    tags.append(keyword)
                    if len(tags) >= 3:
                        break
            for keyword in CJK_ICON_KEYWORDS:
                if len(tags) >= 3:
                    break
                if keyword in text:
                    tags.append(keyword)

        if not tags:
            tags = list(FALLBACK_TAGS)
            confidence = min(confidence if confidence is not None else FALLBACK_CONFIDENCE,
                             FALLBACK_CONFIDENCE)

        category = self._accept_category(category or "")
        reasoning = " ".join(reasoning_lines) or (
            f"Fallback classification as '{category}' due to non-JSON response from model"
        )
        return ClassificationRecord(
            category=category,
            tags=tags[:MAX_TAGS],
            confidence=FALLBACK_CONFIDENCE if confidence is None else confidence,
            reasoning=reasoning,
        )
