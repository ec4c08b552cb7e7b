# src/classification/prompt_builder.py - v2
"""Prompt construction for icon classification.

The prompt embeds the allowed taxonomy and keyword hints derived from the
file name, which often carries the icon's core meaning. Tags and reasoning
are requested in the configured tag language.
"""

from __future__ import annotations

import re
from typing import Literal, Mapping

from iconnormalizer.config.taxonomy import DEFAULT_CATEGORY, DEFAULT_TAXONOMY

JSON_ONLY_SYSTEM_PROMPT = (
    "You are an API that only returns JSON. Return a single valid JSON object, "
    "no markdown, no explanations."
)

# Languages a model is asked to write tags and reasoning in.
TagLanguage = Literal["en", "zh"]

_LANGUAGE_NAMES: dict[str, str] = {"en": "English", "zh": "Chinese (中文)"}
_SYSTEM_LANGUAGE_RULES: dict[str, str] = {
    "zh": "tags 和 reasoning 字段必须使用中文。",
}

_EXTENSION_RE = re.compile(r"\.svg$", re.IGNORECASE)
_HINT_SPLIT_RE = re.compile(r"[-_\s.]+")

_PROMPT_TEMPLATE = """You are an icon classification expert. Classify this icon primarily from its visual content.

Available categories:
{categories}

Icon file name: {filename}
File name keywords: {hints}
File names usually carry the icon's core meaning; use them together with the image.

Return ONLY a valid JSON object, without markdown code fences or any other text.

Required JSON format:
{{
  "category": "one category from the list above",
  "tags": ["tag1", "tag2", "tag3"],
  "confidence": 0.95,
  "reasoning": "short explanation"
}}

Example response (for a home icon):
{{
  "category": "navigation",
  "tags": ["home", "house", "main page", "navigation"],
  "confidence": 0.95,
  "reasoning": "A house outline, the typical icon for navigating to the home page"
}}

Rules:
1. Choose the most appropriate category from the list
2. If unsure, use "{default_category}"
3. Give 3-5 relevant tags
4. Confidence must be between 0.0 and 1.0
5. Keep the reasoning to one or two sentences
6. The output must be valid JSON only
7. Write the tags and the reasoning in {language}

Now analyze the icon and return only JSON:"""


def filename_hints(filename: str) -> list[str]:
    """Split a file name into keyword hints (parts longer than one char)."""
    stem = _EXTENSION_RE.sub("", filename)
    return [part for part in _HINT_SPLIT_RE.split(stem) if len(part) > 1]


class PromptBuilder:
    """Build classification prompts for one taxonomy."""

    def __init__(
        self,
        taxonomy: Mapping[str, tuple[str, ...]] = DEFAULT_TAXONOMY,
        default_category: str = DEFAULT_CATEGORY,
        tag_language: TagLanguage = "en",
    ) -> None:
        if tag_language not in _LANGUAGE_NAMES:
            raise ValueError(f"Unsupported tag language: {tag_language}")
        self._taxonomy = taxonomy
        self._default_category = default_category
        self._tag_language = tag_language

    def category_descriptions(self) -> str:
        return "\n".join(
            f"- {cat}: {', '.join(subcats)}" for cat, subcats in self._taxonomy.items()
        )

    def build(self, filename: str) -> str:
        """Prompt for one icon, identified by its display name."""
        return _PROMPT_TEMPLATE.format(
            categories=self.category_descriptions(),
            filename=filename,
            hints=", ".join(filename_hints(filename)) or "none",
            default_category=self._default_category,
            language=_LANGUAGE_NAMES[self._tag_language],
        )

    @property
    def system_prompt(self) -> str:
        """JSON-only system instruction, plus the language rule where one applies."""
        rule = _SYSTEM_LANGUAGE_RULES.get(self._tag_language)
        return f"{JSON_ONLY_SYSTEM_PROMPT} {rule}" if rule else JSON_ONLY_SYSTEM_PROMPT
