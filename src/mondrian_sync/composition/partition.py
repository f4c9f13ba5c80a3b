from __future__ import annotations

import math
from dataclasses import dataclass

from .seeded_random import SeededRandom

MIN_BLOCK_SIZE = 150
STOP_CHANCE = 0.2

# split point lands 30%..70% along the cut axis
SPLIT_MIN = 0.3
SPLIT_SPAN = 0.4


@dataclass(frozen=True)
class Block:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height


def _cut_horizontal(block: Block, rng: SeededRandom) -> tuple[Block, Block]:
    cut = math.floor(block.y + block.height * (rng.next() * SPLIT_SPAN + SPLIT_MIN))
    top = Block(block.x, block.y, block.width, cut - block.y)
    bottom = Block(block.x, cut, block.width, block.bottom - cut)
    return top, bottom


def _cut_vertical(block: Block, rng: SeededRandom) -> tuple[Block, Block]:
    cut = math.floor(block.x + block.width * (rng.next() * SPLIT_SPAN + SPLIT_MIN))
    left = Block(block.x, block.y, cut - block.x, block.height)
    right = Block(cut, block.y, block.right - cut, block.height)
    return left, right


def _split(block: Block, depth: int, max_depth: int, rng: SeededRandom, min_size: int):
    """
    Decide one node. Returns the (earlier, later) children, or None if `block` is a leaf.

    RNG draws per node, in order:
    - none when the depth limit or the both-sides-small test ends it,
    - one for the stop check (also at depth 0, where it cannot stop),
    - one extra for the axis coin on exact squares,
    - one for the split point.
    """
    if depth >= max_depth:
        return None
    if (block.width < min_size and block.height < min_size) or (
        rng.next() < STOP_CHANCE and depth > 0
    ):
        return None

    if block.height > block.width:
        if block.height > min_size:
            return _cut_horizontal(block, rng)
        return None
    if block.width > block.height:
        if block.width > min_size:
            return _cut_vertical(block, rng)
        return None

    if block.width > min_size and block.height > min_size:
        if rng.next() < 0.5:
            return _cut_vertical(block, rng)
        return _cut_horizontal(block, rng)
    return None


def partition(
    rect: Block,
    depth: int,
    max_depth: int,
    rng: SeededRandom,
    *,
    min_size: int = MIN_BLOCK_SIZE,
) -> list[Block]:
    """
    Recursively subdivide `rect` into non-overlapping blocks that tile it exactly.

    - **depth**: depth of `rect` itself (0 for a whole canvas)
    - **max_depth**: no block is the product of more than `max_depth - depth` further splits
    - **rng**: consumed in depth-first, earlier-child-first order

    Walks an explicit stack instead of recursing; the later child is pushed first so the visit
    order (and therefore the draw order) matches the recursive definition.
    """
    out: list[Block] = []
    stack: list[tuple[Block, int]] = [(rect, depth)]
    while stack:
        block, d = stack.pop()
        children = _split(block, d, max_depth, rng, min_size)
        if children is None:
            out.append(block)
            continue
        earlier, later = children
        stack.append((later, d + 1))
        stack.append((earlier, d + 1))
    return out
