from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class ConnState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


# (state, event) -> next state
_TRANSITIONS: dict[tuple[ConnState, str], ConnState] = {
    (ConnState.DISCONNECTED, "dial"): ConnState.CONNECTING,
    (ConnState.CONNECTING, "opened"): ConnState.CONNECTED,
    (ConnState.CONNECTING, "failed"): ConnState.DISCONNECTED,
    (ConnState.CONNECTED, "closed"): ConnState.DISCONNECTED,
}


def transition(state: ConnState, event: str) -> ConnState:
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise ValueError(f"no transition from {state.value!r} on {event!r}") from None


@dataclass(frozen=True)
class ReconnectPolicy:
    """Fixed delay between attempts, bounded attempt count."""

    max_attempts: int = 10
    delay_s: float = 1.0

    def next_delay(self, attempt: int) -> Optional[float]:
        """Delay before retry number `attempt` (1-based), or None to give up."""
        if attempt < 1 or attempt > self.max_attempts:
            return None
        return self.delay_s
