# src/render/rasterizer.py - v1
"""SVG rasterization for vision models and perceptual hashing.

Every provider must receive visually comparable input, so the output is
always a square RGB PNG on a flat, non-transparent background:
  1. render the SVG at high resolution (cairosvg)
  2. flatten transparency onto the background colour
  3. crop near-background margins
  4. downscale to fit inside the padded target, then centre on the square
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from PIL import Image, ImageChops

from iconnormalizer.core.errors import RenderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RasterConfig:
    """Preprocessing parameters applied after rendering."""

    background: tuple[int, int, int] = (245, 245, 245)
    padding: int = 10
    auto_crop: bool = True
    crop_threshold: int = 250


class BaseRenderer(ABC):
    """Turns vector source into a square PNG buffer."""

    @abstractmethod
    def render(self, svg_content: str, size: int) -> bytes:
        """Render ``svg_content`` to a ``size`` x ``size`` PNG.

        Raises:
            RenderError: If the content cannot be rasterized.
        """


class SvgRasterizer(BaseRenderer):
    """Default renderer backed by cairosvg + Pillow."""

    def __init__(self, config: RasterConfig | None = None) -> None:
        self._config = config or RasterConfig()

    def render(self, svg_content: str, size: int) -> bytes:
        import cairosvg

        initial = max(size * 2, 768)
        try:
            raw_png = cairosvg.svg2png(
                bytestring=svg_content.encode("utf-8"),
                output_width=initial,
                output_height=initial,
            )
        except Exception as exc:
            raise RenderError(f"Failed to render SVG: {exc}") from exc
        if not raw_png:
            raise RenderError("Renderer produced no output")
        return preprocess_png(raw_png, size, self._config)


def preprocess_png(png_bytes: bytes, size: int, config: RasterConfig | None = None) -> bytes:
    """Normalize any raster into a flat-background square PNG."""
    cfg = config or RasterConfig()
    try:
        with Image.open(io.BytesIO(png_bytes)) as src:
            img = _flatten(src, cfg.background)
    except OSError as exc:
        raise RenderError(f"Unreadable raster: {exc}") from exc

    if cfg.auto_crop:
        img = _crop_margins(img, cfg)

    available = max(size - cfg.padding * 2, 1)
    longest = max(img.width, img.height)
    if longest > available:
        scale = available / longest
        img = img.resize(
            (max(1, round(img.width * scale)), max(1, round(img.height * scale))),
            Image.Resampling.LANCZOS,
        )

    canvas = Image.new("RGB", (size, size), cfg.background)
    canvas.paste(img, ((size - img.width) // 2, (size - img.height) // 2))

    out = io.BytesIO()
    canvas.save(out, format="PNG", compress_level=6)
    return out.getvalue()


def _flatten(img: Image.Image, background: tuple[int, int, int]) -> Image.Image:
    rgba = img.convert("RGBA")
    base = Image.new("RGBA", rgba.size, background + (255,))
    return Image.alpha_composite(base, rgba).convert("RGB")


def _crop_margins(img: Image.Image, cfg: RasterConfig) -> Image.Image:
    # Pixels within (255 - crop_threshold) of the background count as margin.
    tolerance = 255 - cfg.crop_threshold
    diff = ImageChops.difference(img, Image.new("RGB", img.size, cfg.background))
    mask = diff.convert("L").point(lambda p: 255 if p > tolerance else 0)
    bbox = mask.getbbox()
    if bbox is None or bbox == (0, 0, img.width, img.height):
        return img
    logger.debug("Auto-cropped %dx%d to %s", img.width, img.height, bbox)
    return img.crop(bbox)
