"""
Seeded pseudo-random source shared by the server preview and every client.

A linear congruential generator with small constants. Every intermediate value stays well below
2**53, so the sequence is bit-identical to any other implementation that uses IEEE-754 doubles
(browsers included). Given the same seed and the same call order, two instances always agree.
"""

from __future__ import annotations

import math

LCG_MODULUS = 233280
LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297


class SeededRandom:
    def __init__(self, seed: int) -> None:
        state = int(seed) % LCG_MODULUS
        # a zero state would still advance, but keep the start strictly positive
        if state <= 0:
            state += LCG_MODULUS
        self._state = state

    @property
    def state(self) -> int:
        return self._state

    def next(self) -> float:
        """Advance once and return a float in [0, 1)."""
        self._state = (self._state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self._state / LCG_MODULUS

    def next_int(self, min_value: int, max_value: int) -> int:
        """Integer in [min_value, max_value], both inclusive."""
        return math.floor(self.next() * (max_value - min_value + 1)) + min_value

    def next_float(self, min_value: float, max_value: float) -> float:
        return self.next() * (max_value - min_value) + min_value

    def __repr__(self) -> str:
        return f"SeededRandom(state={self._state})"
