from .params import GenerationParams, random_params
from .partition import MIN_BLOCK_SIZE, Block, partition
from .render import (
    BACKGROUND_COLOR,
    CLASSIC_COLORS,
    LINE_COLOR,
    PRIMARY_COLORS,
    Composition,
    Surface,
    compose,
    draw_composition,
)
from .seeded_random import SeededRandom

__all__ = [
    "BACKGROUND_COLOR",
    "CLASSIC_COLORS",
    "LINE_COLOR",
    "MIN_BLOCK_SIZE",
    "PRIMARY_COLORS",
    "Block",
    "Composition",
    "GenerationParams",
    "SeededRandom",
    "Surface",
    "compose",
    "draw_composition",
    "partition",
    "random_params",
]
