"""
Tests for mondrian_sync.client.socket_client and tools.follow
Frame routing without a network connection.
"""

import asyncio
import io
import json
import socket

import pytest
import websockets

from mondrian_sync.client.clock import ClockEstimator
from mondrian_sync.client.reconnect import ConnState, ReconnectPolicy
from mondrian_sync.client.socket_client import MondrianClient
from mondrian_sync.composition import compose
from mondrian_sync.protocol.messages import Audio, Generate
from mondrian_sync.tools.follow import Follower

GENERATE = json.dumps(
    {
        "event": "generate",
        "timestamp": 1_700_000_000_000,
        "seed": 1_700_000_000_000,
        "depth": 5,
        "colorChance": 0.3,
        "lineWeight": 20,
        "duration": 5000,
    }
)


@pytest.fixture
def local_time():
    return {"t": 10_000}


@pytest.fixture
def mc(local_time):
    clock = ClockEstimator(lambda: local_time["t"])
    return MondrianClient("ws://test/ws", width=800, height=600, clock=clock)


class TestRouting:
    """handle_message dispatch."""

    def test_welcome(self, mc):
        mc.handle_message('{"event":"welcome","clientId":"abc","serverTime":15000}')
        assert mc.client_id == "abc"
        assert mc.clock.offset_ms == 5000

    def test_sync_refines_clock(self, mc, local_time):
        mc.handle_message('{"event":"sync","serverTime":20000,"clientTime":9900}')
        assert mc.clock.state.last_rtt_ms == 100
        assert mc.clock.offset_ms == 20_000 - 9_950

    def test_generate_uses_local_canvas(self, mc):
        got = []
        mc.on_generate = lambda event, params: got.append((event, params))
        mc.handle_message(GENERATE)
        (event, params), = got
        assert isinstance(event, Generate)
        assert (params.width, params.height) == (800, 600)
        assert params.seed == event.seed and params.line_weight == 20

    def test_two_clients_agree(self):
        """Independent clients with the same canvas draw the same composition."""
        results = []
        for _ in range(2):
            mc = MondrianClient("ws://test/ws", width=1280, height=720)
            mc.on_generate = lambda event, params: results.append(compose(params))
            mc.handle_message(GENERATE)
        first, second = results
        assert first.blocks == second.blocks
        assert first.fills == second.fills

    def test_users(self, mc):
        counts = []
        mc.on_users = counts.append
        mc.handle_message('{"event":"users","count":3}')
        assert mc.user_count == 3 and counts == [3]

    def test_audio(self, mc):
        got = []
        mc.on_audio = got.append
        mc.handle_message('{"event":"audio","timestamp":1,"frequencies":[440.0],"duration":5}')
        assert isinstance(got[0], Audio) and got[0].frequencies == [440.0]

    @pytest.mark.parametrize("raw", ["", "nope", '{"event":"users"}', '{"event":"mystery"}'])
    def test_malformed_dropped(self, mc, raw):
        assert mc.handle_message(raw) is None

    def test_on_event_sees_everything(self, mc):
        seen = []
        mc.on_event = seen.append
        mc.handle_message('{"event":"users","count":1}')
        mc.handle_message(GENERATE)
        assert [m.event for m in seen] == ["users", "generate"]


class TestConnectionState:
    """State changes reported through on_connection."""

    def test_reports_open_and_close(self, mc):
        flags = []
        mc.on_connection = flags.append
        mc._set_state("dial")
        assert mc.state is ConnState.CONNECTING and flags == []
        mc._set_state("opened")
        assert mc.connected
        mc._set_state("closed")
        assert flags == [True, False]


class TestFollower:
    """PNG output and JSONL recording."""

    def test_saves_png(self, mc, tmp_path):
        follower = Follower(out_dir=tmp_path / "out", record=None, echo=False)
        mc.width, mc.height = 64, 48
        mc.on_generate = follower.on_generate
        mc.handle_message(GENERATE)
        path = tmp_path / "out" / "mondrian_1700000000000.png"
        assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"

    def test_records_jsonl(self, mc):
        buf = io.StringIO()
        follower = Follower(out_dir=None, record=buf, echo=False)
        mc.on_event = follower.on_event
        mc.handle_message('{"event":"users","count":2}')
        line = json.loads(buf.getvalue().splitlines()[0])
        assert line["msg"] == {"event": "users", "count": 2}
        assert isinstance(line["ts"], int)


class TestCallbackFailures:
    """A raising callback is logged; the connection carries on."""

    def test_generate_oserror_keeps_connection(self, mc):
        def disk_full(event, params):
            raise OSError(28, "No space left on device")

        mc._set_state("dial")
        mc._set_state("opened")
        mc.on_generate = disk_full
        assert isinstance(mc.handle_message(GENERATE), Generate)
        assert mc.connected

        counts = []
        mc.on_users = counts.append
        mc.handle_message('{"event":"users","count":4}')
        assert counts == [4]

    def test_other_callbacks_guarded(self, mc):
        def boom(*args):
            raise RuntimeError("boom")

        mc.on_event = boom
        mc.on_users = boom
        mc.on_connection = boom
        mc._set_state("dial")
        mc._set_state("opened")
        mc.handle_message('{"event":"users","count":2}')
        assert mc.user_count == 2 and mc.connected


def unused_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestRunLoop:
    """run() against real sockets."""

    def test_gives_up_after_policy(self):
        mc = MondrianClient(
            f"ws://127.0.0.1:{unused_port()}/ws",
            policy=ReconnectPolicy(max_attempts=2, delay_s=0.0),
        )
        events = []
        set_state = mc._set_state

        def record(event):
            events.append(event)
            set_state(event)

        mc._set_state = record
        asyncio.run(asyncio.wait_for(mc.run(), 10))
        assert events.count("dial") == 3
        assert events.count("failed") == 3
        assert mc.state is ConnState.DISCONNECTED

    def test_close_during_dial(self):
        async def scenario():
            async def handler(ws):
                await ws.wait_closed()

            async with websockets.serve(handler, "127.0.0.1", 0) as server:
                port = next(iter(server.sockets)).getsockname()[1]
                mc = MondrianClient(
                    f"ws://127.0.0.1:{port}/ws", policy=ReconnectPolicy(max_attempts=0)
                )
                task = asyncio.create_task(mc.run())
                await asyncio.sleep(0)
                dialing = mc.state
                await mc.close()
                await asyncio.wait_for(task, 5)
                return dialing, mc.state

        dialing, final = asyncio.run(scenario())
        assert dialing is ConnState.CONNECTING
        assert final is ConnState.DISCONNECTED
