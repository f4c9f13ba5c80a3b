from __future__ import annotations

import random
from dataclasses import dataclass

DEPTH_RANGE = (4, 6)
COLOR_CHANCE_RANGE = (0.2, 0.4)
LINE_WEIGHT_RANGE = (12, 30)


@dataclass(frozen=True)
class GenerationParams:
    seed: int
    depth: int
    color_chance: float
    line_weight: int
    # Canvas size is local to each renderer; it never travels with the seed.
    width: int
    height: int

    @classmethod
    def from_event(cls, event, width: int, height: int) -> "GenerationParams":
        """Build params from a `generate` event plus the receiver's own canvas size."""
        return cls(
            seed=event.seed,
            depth=event.depth,
            color_chance=event.color_chance,
            line_weight=event.line_weight,
            width=width,
            height=height,
        )


def random_params(rng: random.Random | None = None) -> dict[str, float | int]:
    """
    Draw fresh depth/color_chance/line_weight for a broadcast.

    Uses an ordinary (unseeded) source: only the seed is replayed by clients.
    """
    r = rng or random.Random()
    return {
        "depth": r.randint(*DEPTH_RANGE),
        "color_chance": r.uniform(*COLOR_CHANCE_RANGE),
        "line_weight": r.randint(*LINE_WEIGHT_RANGE),
    }
