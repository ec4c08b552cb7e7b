# src/core/hashing.py - v1
"""Content addressing for scanned icons.

Two levels are computed per file:
  1. content digest: SHA-256 over the raw bytes (exact duplicate key)
  2. perceptual hash: pHash over the rendered raster (near duplicate signal)

Item ids are a pure function of file name and content so re-runs on an
unchanged directory produce identical ids.
"""

from __future__ import annotations

import hashlib
import io
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import imagehash
from PIL import Image

from iconnormalizer.core.errors import RenderError
from iconnormalizer.core.models import Item

if TYPE_CHECKING:
    from iconnormalizer.render.rasterizer import BaseRenderer

logger = logging.getLogger(__name__)

# Rasters used only for hashing do not need the classification resolution.
HASH_RENDER_SIZE = 128


def content_digest(raw_bytes: bytes) -> str:
    """SHA-256 hex digest of the raw file bytes."""
    return hashlib.sha256(raw_bytes).hexdigest()


def generate_item_id(display_name: str, content: str) -> str:
    """Stable item id: ``{sha256(name)[:8]}-{sha256(content)[:8]}``."""
    name_hash = hashlib.sha256(display_name.encode("utf-8")).hexdigest()
    body_hash = hashlib.sha256(content.encode("utf-8")).hexdigest()
    return f"{name_hash[:8]}-{body_hash[:8]}"


def perceptual_hash(png_bytes: bytes, hash_size: int = 8) -> str:
    """Compute the pHash of a raster image and return it as hex."""
    with Image.open(io.BytesIO(png_bytes)) as img:
        if img.mode != "RGB":
            img = img.convert("RGB")
        return str(imagehash.phash(img, hash_size=hash_size))


def hamming_distance(hash_a: str, hash_b: str) -> int:
    """Number of differing bits between two equal-length hex hashes."""
    if len(hash_a) != len(hash_b):
        raise ValueError(
            f"Hash length mismatch: {len(hash_a)} != {len(hash_b)}"
        )
    return bin(int(hash_a, 16) ^ int(hash_b, 16)).count("1")


def hash_similarity(hash_a: str | None, hash_b: str | None) -> float:
    """Similarity in [0, 1] derived from the Hamming distance of two hashes.

    Missing or malformed hashes compare as completely dissimilar.
    """
    if not hash_a or not hash_b:
        return 0.0
    try:
        distance = hamming_distance(hash_a, hash_b)
    except ValueError:
        return 0.0
    bits = len(hash_a) * 4
    return 1.0 - distance / bits


class ContentHasher:
    """Build immutable ``Item`` records from raw file bytes.

    Args:
        renderer: Optional rasterizer. Without one, items carry no
            perceptual hash and only exact duplicates can be detected.
        hash_size: pHash grid size (8 → 64-bit hash).
    """

    def __init__(
        self,
        renderer: BaseRenderer | None = None,
        hash_size: int = 8,
    ) -> None:
        self._renderer = renderer
        self._hash_size = hash_size

    def load(self, path: Path, raw_bytes: bytes) -> Item:
        """Derive an Item from a file path and its bytes."""
        content = raw_bytes.decode("utf-8", errors="replace")
        display_name = path.name
        return Item(
            id=generate_item_id(display_name, content),
            display_name=display_name,
            path=path,
            raw_content=content,
            byte_size=len(raw_bytes),
            content_digest=content_digest(raw_bytes),
            perceptual_hash=self._perceptual_hash(content, display_name),
        )

    def _perceptual_hash(self, content: str, display_name: str) -> str | None:
        if self._renderer is None:
            return None
        try:
            png = self._renderer.render(content, HASH_RENDER_SIZE)
            return perceptual_hash(png, self._hash_size)
        except (RenderError, OSError, ValueError) as exc:
            logger.warning(
                "Could not compute perceptual hash for %s: %s", display_name, exc,
            )
            return None
