from __future__ import annotations

import io
from typing import Sequence

from PIL import Image, ImageDraw

from mondrian_sync.composition import (
    BACKGROUND_COLOR,
    MIN_BLOCK_SIZE,
    PRIMARY_COLORS,
    Block,
    Composition,
    GenerationParams,
    compose,
)


class ImageSurface:
    """
    Pillow-backed drawing surface.

    Strokes are centered on the block edge (half inside, half outside) like a 2D canvas
    `strokeRect`; each edge is drawn as a band reaching `width / 2` past the corners, which gives
    miter joins and butt caps on axis-aligned rectangles.
    """

    def __init__(self, width: int, height: int, background: str = BACKGROUND_COLOR) -> None:
        self.image = Image.new("RGB", (width, height), background)
        self._draw = ImageDraw.Draw(self.image)

    def _band(self, x0: int, y0: int, x1: int, y1: int, color: str) -> None:
        # half-open [x0, x1) x [y0, y1); PIL rectangles include both corners
        if x1 <= x0 or y1 <= y0:
            return
        self._draw.rectangle([x0, y0, x1 - 1, y1 - 1], fill=color)

    def fill_rect(self, block: Block, color: str) -> None:
        self._band(block.x, block.y, block.right, block.bottom, color)

    def stroke_rect(self, block: Block, color: str, width: int) -> None:
        if width <= 0:
            return
        lo = width // 2
        hi = width - lo
        x0, x1 = block.x - lo, block.right + hi
        y0, y1 = block.y - lo, block.bottom + hi
        self._band(x0, y0, x1, block.y + hi, color)  # top
        self._band(x0, block.bottom - lo, x1, y1, color)  # bottom
        self._band(x0, y0, block.x + hi, y1, color)  # left
        self._band(block.right - lo, y0, x1, y1, color)  # right

    def to_png(self) -> bytes:
        bio = io.BytesIO()
        self.image.save(bio, format="PNG", optimize=True)
        return bio.getvalue()


def render_image(
    params: GenerationParams,
    *,
    min_size: int = MIN_BLOCK_SIZE,
    palette: Sequence[str] = PRIMARY_COLORS,
) -> tuple[ImageSurface, Composition]:
    surface = ImageSurface(params.width, params.height)
    composition = compose(params, surface, min_size=min_size, palette=palette)
    return surface, composition


def render_png(
    params: GenerationParams,
    *,
    min_size: int = MIN_BLOCK_SIZE,
    palette: Sequence[str] = PRIMARY_COLORS,
) -> bytes:
    surface, _ = render_image(params, min_size=min_size, palette=palette)
    return surface.to_png()

