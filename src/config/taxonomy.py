# src/config/taxonomy.py - v2
"""Default icon category taxonomy: category -> subcategory keywords.

The taxonomy is embedded into every classification prompt and is also the
keyword list the response parser scans when a model reply is not valid JSON.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

DEFAULT_CATEGORY = "interface"
ERROR_CATEGORY = "error"
DUPLICATE_CATEGORY = "duplicate"
# Assigned by the pipeline itself, never accepted from a model reply.
RESERVED_CATEGORIES = frozenset({ERROR_CATEGORY, DUPLICATE_CATEGORY})

DEFAULT_TAXONOMY: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "interface": ("navigation", "actions", "controls", "input", "output"),
    "media": ("play", "pause", "volume", "screen", "camera"),
    "action": ("add", "remove", "edit", "save", "delete", "download", "upload"),
    "alert": ("warning", "error", "info", "success", "notification"),
    "avatar": ("user", "profile", "person", "people", "face"),
    "communication": ("email", "phone", "message", "chat", "call"),
    "content": ("text", "image", "video", "audio", "file"),
    "device": ("computer", "mobile", "tablet", "tv", "watch"),
    "editor": ("bold", "italic", "underline", "align", "list"),
    "file": ("folder", "document", "archive", "attachment"),
    "health": ("heart", "medical", "fitness", "food"),
    "image": ("photo", "gallery", "filter", "crop"),
    "location": ("map", "pin", "gps", "direction"),
    "maps": ("map", "location", "navigation", "direction"),
    "navigation": ("arrow", "home", "back", "forward", "up", "down", "left", "right"),
    "notification": ("bell", "alert", "message", "warning"),
    "social": ("share", "like", "comment", "follow", "heart"),
    "text": ("font", "size", "color", "format"),
    "time": ("clock", "calendar", "date", "timer"),
    "transportation": ("car", "bus", "train", "plane", "bike"),
    "travel": ("map", "location", "hotel", "flight"),
    "shopping": ("cart", "bag", "gift", "tag"),
    "sports": ("ball", "trophy", "medal", "goal"),
    "science": ("lab", "atom", "microscope", "telescope"),
    "education": ("book", "graduation", "school", "pencil"),
    "food": ("restaurant", "coffee", "pizza", "drink"),
    "emoji": ("smile", "sad", "laugh", "cry", "heart"),
    "flags": ("country", "language", "region"),
})
