"""Shared fixtures: scripted RNG, fake sockets, a test server with the timer held back."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from mondrian_sync.server.app import create_app
from mondrian_sync.server.config import Settings


class ScriptedRandom:
    """Stand-in for SeededRandom that replays fixed values and counts draws."""

    def __init__(self, values, default=None):
        self.values = list(values)
        self.default = default
        self.calls = 0

    def next(self) -> float:
        self.calls += 1
        if self.values:
            return self.values.pop(0)
        if self.default is None:
            raise AssertionError("scripted values exhausted")
        return self.default


class FakeSocket:
    def __init__(self, fail: bool = False):
        self.sent: list[str] = []
        self.fail = fail

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)


@pytest.fixture
def settings():
    # Keep the broadcast timer from firing during tests.
    return Settings(generation_interval_ms=60_000, startup_delay_ms=60_000, _env_file=None)


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c
