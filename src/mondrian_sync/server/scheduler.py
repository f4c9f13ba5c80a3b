from __future__ import annotations

import asyncio
import enum
import logging
import random
from typing import Awaitable, Callable, Optional

from mondrian_sync.composition.params import random_params
from mondrian_sync.protocol.messages import Audio, Generate
from mondrian_sync.protocol.timebase import now_ms

from .sessions import SessionRegistry

log = logging.getLogger(__name__)

# A3 .. A5
FREQ_MIN_HZ = 220.0
FREQ_MAX_HZ = 880.0


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"


def random_frequencies(rng: random.Random) -> list[float]:
    """One tone or a two-tone combination, each uniform in [220, 880) Hz."""
    count = 2 if rng.random() > 0.5 else 1
    return [rng.random() * (FREQ_MAX_HZ - FREQ_MIN_HZ) + FREQ_MIN_HZ for _ in range(count)]


class GenerationScheduler:
    """
    Periodically picks a seed + parameters and broadcasts them to every session.

    The timer is one asyncio task. `reschedule()` swaps it for a new one without yielding to the
    loop in between, so an old and a new timer can never both fire.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        broadcast: Callable[[dict], Awaitable[int]],
        *,
        interval_ms: int = 5000,
        startup_delay_ms: int = 1000,
        audio_duration_s: float = 5.0,
        rng: Optional[random.Random] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self._registry = registry
        self._broadcast = broadcast
        self.interval_ms = interval_ms
        self.startup_delay_ms = startup_delay_ms
        self.audio_duration_s = audio_duration_s
        self._rng = rng or random.Random()
        self._clock = clock
        self._task: Optional[asyncio.Task[None]] = None
        self._last_seed: Optional[int] = None
        self.ticks = 0

    @property
    def state(self) -> SchedulerState:
        if self._task is not None and not self._task.done():
            return SchedulerState.SCHEDULED
        return SchedulerState.IDLE

    def start(self) -> None:
        if self.state is SchedulerState.SCHEDULED:
            return
        log.info(
            "starting generation scheduler (%dms interval, first tick in %dms)",
            self.interval_ms,
            self.startup_delay_ms,
        )
        self._task = asyncio.get_running_loop().create_task(
            self._run(self.startup_delay_ms), name="generation-scheduler"
        )

    def cancel(self) -> None:
        """Synchronous half of `stop()`; safe to call from a signal handler."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.info("scheduler stopped")

    def reschedule(self, interval_ms: int) -> None:
        """Change the interval; a running timer restarts with the first tick one interval out."""
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self.interval_ms = interval_ms
        if self.state is SchedulerState.IDLE:
            return
        old = self._task
        self._task = asyncio.get_running_loop().create_task(
            self._run(interval_ms), name="generation-scheduler"
        )
        if old is not None:
            old.cancel()
        log.info("generation interval set to %dms", interval_ms)

    async def _run(self, first_delay_ms: int) -> None:
        await asyncio.sleep(first_delay_ms / 1000)
        while True:
            try:
                await self.tick()
            except Exception:
                log.exception("generation tick failed")
            await asyncio.sleep(self.interval_ms / 1000)

    def _next_seed(self) -> int:
        seed = self._clock()
        if self._last_seed is not None and seed <= self._last_seed:
            seed = self._last_seed + 1
        self._last_seed = seed
        return seed

    async def tick(self) -> Optional[Generate]:
        """One broadcast round. Returns the generate event, or None when nobody is listening."""
        clients = self._registry.count()
        if clients == 0:
            return None

        seed = self._next_seed()
        params = random_params(self._rng)
        gen = Generate(
            timestamp=self._clock(),
            seed=seed,
            depth=params["depth"],
            color_chance=params["color_chance"],
            line_weight=params["line_weight"],
            duration=self.interval_ms,
        )
        await self._broadcast(gen.wire())
        log.info("generate: seed=%d depth=%d clients=%d", seed, gen.depth, clients)

        frequencies = random_frequencies(self._rng)
        audio = Audio(
            timestamp=self._clock(),
            frequencies=frequencies,
            duration=self.audio_duration_s,
        )
        await self._broadcast(audio.wire())
        log.info("audio: %s", " + ".join(f"{round(f)}Hz" for f in frequencies))

        self.ticks += 1
        return gen
