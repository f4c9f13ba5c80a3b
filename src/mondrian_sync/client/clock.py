"""
Client-side estimate of the broadcaster's clock.

The welcome message gives a first, crude offset (`serverTime - now`, latency ignored). Each sync
round then measures the round trip and assumes the server stamped its reply at the midpoint:

    rtt    = now - clientTime
    offset = serverTime - (clientTime + rtt / 2)

By default every round replaces the previous estimate. Pass `smoothing` (0 < a <= 1) to blend
new rounds into the old value instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from mondrian_sync.protocol.messages import SyncRequest
from mondrian_sync.protocol.timebase import now_ms

log = logging.getLogger(__name__)


@dataclass
class ClockState:
    offset_ms: float = 0.0
    last_rtt_ms: Optional[float] = None
    # refined (sync) samples taken so far; the welcome estimate does not count
    samples: int = 0


class ClockEstimator:
    def __init__(
        self,
        clock: Callable[[], float] = now_ms,
        *,
        smoothing: Optional[float] = None,
    ) -> None:
        if smoothing is not None and not 0.0 < smoothing <= 1.0:
            raise ValueError(f"smoothing must be in (0, 1], got {smoothing}")
        self._clock = clock
        self.smoothing = smoothing
        self.state = ClockState()

    @property
    def offset_ms(self) -> float:
        return self.state.offset_ms

    def on_welcome(self, server_time: float) -> float:
        self.state.offset_ms = server_time - self._clock()
        log.info("initial clock offset: %.0fms", self.state.offset_ms)
        return self.state.offset_ms

    def request(self) -> SyncRequest:
        return SyncRequest(client_time=self._clock())

    def on_sync(self, server_time: float, client_time: float) -> ClockState:
        now = self._clock()
        rtt = now - client_time
        if rtt < 0:
            log.warning("ignoring sync reply with negative rtt (%.0fms)", rtt)
            return self.state

        sample = server_time - (client_time + rtt / 2)
        st = self.state
        if self.smoothing is None or st.samples == 0:
            st.offset_ms = sample
        else:
            st.offset_ms += self.smoothing * (sample - st.offset_ms)
        st.last_rtt_ms = rtt
        st.samples += 1
        log.info("clock sync: offset=%.0fms rtt=%.0fms", st.offset_ms, rtt)
        return st

    def server_now(self) -> float:
        return self._clock() + self.state.offset_ms

    def to_local(self, server_ts: float) -> float:
        """Map a server-stamped time onto the local clock."""
        return server_ts - self.state.offset_ms
