from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from .params import GenerationParams
from .partition import MIN_BLOCK_SIZE, Block, partition
from .seeded_random import SeededRandom

PRIMARY_COLORS = ("#FF0000", "#0000FF", "#FFFF00")  # red, blue, yellow
# Print palette used by the offline generator (muted blue, near-black accent).
CLASSIC_COLORS = ("#FF0000", "#225095", "#FFFF00", "#30303a")
BACKGROUND_COLOR = "#FFFFFF"
LINE_COLOR = "#000000"


class Surface(Protocol):
    def fill_rect(self, block: Block, color: str) -> None: ...

    def stroke_rect(self, block: Block, color: str, width: int) -> None: ...


@dataclass
class Composition:
    params: GenerationParams
    blocks: list[Block] = field(default_factory=list)
    fills: list[str] = field(default_factory=list)


def draw_composition(
    surface: Surface | None,
    blocks: Sequence[Block],
    color_chance: float,
    line_weight: int,
    rng: SeededRandom,
    *,
    palette: Sequence[str] = PRIMARY_COLORS,
) -> list[str]:
    """
    Fill every block, then outline all of them.

    One draw per block decides colored vs. background; colored blocks take a second draw to pick
    the palette entry. Returns the fill colors in block order. `surface=None` only replays the
    draws (useful when just the outcome is needed).
    """
    fills: list[str] = []
    for block in blocks:
        if rng.next() < color_chance:
            color = palette[math.floor(rng.next() * len(palette))]
        else:
            color = BACKGROUND_COLOR
        fills.append(color)
        if surface is not None:
            surface.fill_rect(block, color)

    if surface is not None:
        for block in blocks:
            surface.stroke_rect(block, LINE_COLOR, line_weight)
    return fills


def compose(
    params: GenerationParams,
    surface: Surface | None = None,
    *,
    min_size: int = MIN_BLOCK_SIZE,
    palette: Sequence[str] = PRIMARY_COLORS,
) -> Composition:
    """Entry point shared by the server preview, the batch tool and every client."""
    rng = SeededRandom(params.seed)
    canvas = Block(0, 0, params.width, params.height)
    if surface is not None:
        surface.fill_rect(canvas, BACKGROUND_COLOR)

    blocks = partition(canvas, 0, params.depth, rng, min_size=min_size)
    # same generator, continued: the color draws follow the partition draws
    fills = draw_composition(
        surface, blocks, params.color_chance, params.line_weight, rng, palette=palette
    )
    return Composition(params=params, blocks=blocks, fills=fills)
