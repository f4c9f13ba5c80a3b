"""
Wall-clock helpers.

Everything that stamps or compares protocol timestamps goes through `now_ms()` so tests can swap
in a fake clock (components take a `clock` callable defaulting to this function).
"""

from __future__ import annotations

import time


def now_ms() -> int:
    """Unix epoch time in integer milliseconds."""
    return int(time.time() * 1000)
