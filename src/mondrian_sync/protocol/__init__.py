from .constants import (
    E_AUDIO,
    E_GENERATE,
    E_JOIN,
    E_SYNC,
    E_SYNC_REQUEST,
    E_USERS,
    E_WELCOME,
)
from .timebase import now_ms

__all__ = [
    "E_AUDIO",
    "E_GENERATE",
    "E_JOIN",
    "E_SYNC",
    "E_SYNC_REQUEST",
    "E_USERS",
    "E_WELCOME",
    "now_ms",
]
