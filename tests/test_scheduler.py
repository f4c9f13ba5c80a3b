"""
Tests for mondrian_sync.server.scheduler
Idle skip, broadcast contents, lifecycle, atomic reschedule.
"""

import asyncio
import random

import pytest

from mondrian_sync.server.scheduler import (
    FREQ_MAX_HZ,
    FREQ_MIN_HZ,
    GenerationScheduler,
    SchedulerState,
    random_frequencies,
)
from mondrian_sync.server.sessions import SessionRegistry


class Collector:
    def __init__(self):
        self.messages = []

    async def __call__(self, msg):
        self.messages.append(msg)
        return 1


def make(registry=None, **kw):
    registry = registry or SessionRegistry()
    sink = Collector()
    kw.setdefault("rng", random.Random(3))
    return GenerationScheduler(registry, sink, **kw), registry, sink


class TestTick:
    """One broadcast round."""

    def test_idle_skip(self):
        sched, _, sink = make()
        assert asyncio.run(sched.tick()) is None
        assert sink.messages == []
        assert sched.ticks == 0

    def test_generate_then_audio(self):
        async def scenario():
            sched, reg, sink = make(clock=lambda: 1_700_000_000_000, interval_ms=5000)
            await reg.add("c1")
            gen = await sched.tick()
            return gen, sink.messages

        gen, messages = asyncio.run(scenario())
        assert [m["event"] for m in messages] == ["generate", "audio"]
        g, a = messages
        assert g["seed"] == gen.seed == 1_700_000_000_000
        assert 4 <= g["depth"] <= 6
        assert 0.2 <= g["colorChance"] <= 0.4
        assert 12 <= g["lineWeight"] <= 30
        assert g["duration"] == 5000
        assert 1 <= len(a["frequencies"]) <= 2
        assert all(FREQ_MIN_HZ <= f < FREQ_MAX_HZ for f in a["frequencies"])
        assert a["duration"] == 5.0

    def test_seeds_unique_with_frozen_clock(self):
        async def scenario():
            sched, reg, _ = make(clock=lambda: 1000)
            await reg.add("c1")
            return [(await sched.tick()).seed for _ in range(3)]

        assert asyncio.run(scenario()) == [1000, 1001, 1002]

    def test_frequencies(self):
        rng = random.Random(11)
        counts = {len(random_frequencies(rng)) for _ in range(200)}
        assert counts == {1, 2}


class TestLifecycle:
    """start/stop/cancel and the timer loop."""

    def test_start_stop(self):
        async def scenario():
            sched, _, _ = make(startup_delay_ms=10_000)
            assert sched.state is SchedulerState.IDLE
            sched.start()
            sched.start()  # idempotent
            assert sched.state is SchedulerState.SCHEDULED
            await sched.stop()
            await sched.stop()
            return sched.state

        assert asyncio.run(scenario()) is SchedulerState.IDLE

    def test_cancel_then_stop(self):
        async def scenario():
            sched, _, _ = make(startup_delay_ms=10_000)
            sched.start()
            sched.cancel()
            await asyncio.sleep(0)
            state = sched.state
            await sched.stop()
            return state

        assert asyncio.run(scenario()) is SchedulerState.IDLE

    def test_loop_ticks(self):
        async def scenario():
            sched, reg, sink = make(startup_delay_ms=0, interval_ms=10)
            await reg.add("c1")
            sched.start()
            await asyncio.sleep(0.1)
            await sched.stop()
            return sched.ticks, sink.messages

        ticks, messages = asyncio.run(scenario())
        assert ticks >= 2
        assert len(messages) == 2 * ticks

    def test_idle_loop_broadcasts_nothing(self):
        async def scenario():
            sched, _, sink = make(startup_delay_ms=0, interval_ms=10)
            sched.start()
            await asyncio.sleep(0.05)
            await sched.stop()
            return sink.messages

        assert asyncio.run(scenario()) == []

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            make(interval_ms=0)


class TestReschedule:
    """Cancel-and-reschedule is one step."""

    def test_idle_only_updates_interval(self):
        sched, _, _ = make()
        sched.reschedule(2000)
        assert sched.interval_ms == 2000
        assert sched.state is SchedulerState.IDLE

    def test_replaces_task(self):
        async def scenario():
            sched, _, _ = make(startup_delay_ms=10_000)
            sched.start()
            old = sched._task
            sched.reschedule(3000)
            new = sched._task
            await asyncio.sleep(0.01)
            result = (old is not new, old.cancelled(), new.done(), sched.state)
            await sched.stop()
            return result

        replaced, old_cancelled, new_done, state = asyncio.run(scenario())
        assert replaced and old_cancelled
        assert not new_done
        assert state is SchedulerState.SCHEDULED

    def test_only_new_timer_fires(self):
        async def scenario():
            sched, reg, sink = make(startup_delay_ms=50, interval_ms=1000)
            await reg.add("c1")
            sched.start()
            # old timer would fire at 50ms; new one first fires at 200ms
            sched.reschedule(200)
            await asyncio.sleep(0.1)
            early = len(sink.messages)
            await asyncio.sleep(0.15)
            late = len(sink.messages)
            await sched.stop()
            return early, late

        early, late = asyncio.run(scenario())
        assert early == 0
        assert late == 2

    def test_rejects_non_positive(self):
        sched, _, _ = make()
        with pytest.raises(ValueError):
            sched.reschedule(-5)
