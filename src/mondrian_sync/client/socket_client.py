from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Optional

import websockets
from pydantic import ValidationError

from mondrian_sync import __version__
from mondrian_sync.composition import GenerationParams
from mondrian_sync.protocol.messages import (
    Audio,
    Generate,
    Join,
    Sync,
    Users,
    Welcome,
    parse_server_message,
)

from .clock import ClockEstimator
from .reconnect import ConnState, ReconnectPolicy, transition

log = logging.getLogger(__name__)

USER_AGENT = f"mondrian-sync/{__version__} (python)"


class MondrianClient:
    """
    Follows the broadcaster over a websocket.

    Each `generate` event is turned into local `GenerationParams` using this client's own canvas
    size; drawing is left to `on_generate`. Reconnects with a fixed delay until the policy gives
    up.
    """

    def __init__(
        self,
        url: str,
        *,
        width: int = 1920,
        height: int = 1080,
        sync_interval_s: float = 30.0,
        policy: Optional[ReconnectPolicy] = None,
        clock: Optional[ClockEstimator] = None,
        on_generate: Optional[Callable[[Generate, GenerationParams], Any]] = None,
        on_audio: Optional[Callable[[Audio], Any]] = None,
        on_users: Optional[Callable[[int], Any]] = None,
        on_connection: Optional[Callable[[bool], Any]] = None,
        on_event: Optional[Callable[[Any], Any]] = None,
    ) -> None:
        self.url = url
        self.width = width
        self.height = height
        self.sync_interval_s = sync_interval_s
        self.policy = policy or ReconnectPolicy()
        self.clock = clock or ClockEstimator()
        self.on_generate = on_generate
        self.on_audio = on_audio
        self.on_users = on_users
        self.on_connection = on_connection
        self.on_event = on_event

        self.state = ConnState.DISCONNECTED
        self.client_id: Optional[str] = None
        self.user_count = 0
        self._closing = False
        self._ws = None

    @property
    def connected(self) -> bool:
        return self.state is ConnState.CONNECTED

    def _set_state(self, event: str) -> None:
        before = self.state
        self.state = transition(self.state, event)
        if before is ConnState.CONNECTED or self.state is ConnState.CONNECTED:
            self._notify("on_connection", self.state is ConnState.CONNECTED)

    def _notify(self, name: str, *args: Any) -> None:
        callback = getattr(self, name)
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            log.exception("%s callback failed", name)

    def handle_message(self, raw: str | bytes) -> Optional[Any]:
        """
        Parse one server frame and route it.

        Malformed frames are logged and dropped. A failing callback is logged too; it never ends
        the connection.
        """
        try:
            msg = parse_server_message(raw)
        except ValidationError as e:
            log.warning("ignoring malformed server frame: %s", e.errors()[:1])
            return None

        self._notify("on_event", msg)

        if isinstance(msg, Welcome):
            self.client_id = msg.client_id
            log.info("welcome, client id %s", msg.client_id)
            self.clock.on_welcome(msg.server_time)
        elif isinstance(msg, Sync):
            self.clock.on_sync(msg.server_time, msg.client_time)
        elif isinstance(msg, Generate):
            params = GenerationParams.from_event(msg, self.width, self.height)
            log.info("generation: seed=%d depth=%d", msg.seed, msg.depth)
            self._notify("on_generate", msg, params)
        elif isinstance(msg, Audio):
            log.debug("audio: %d tone(s)", len(msg.frequencies))
            self._notify("on_audio", msg)
        elif isinstance(msg, Users):
            self.user_count = msg.count
            log.info("users online: %d", msg.count)
            self._notify("on_users", msg.count)
        return msg

    async def _send(self, ws, msg: dict) -> None:
        await ws.send(json.dumps(msg, separators=(",", ":")))

    async def _sync_loop(self, ws) -> None:
        while True:
            await self._send(ws, self.clock.request().wire())
            await asyncio.sleep(self.sync_interval_s)

    async def _session(self, ws) -> None:
        await self._send(ws, Join(user_agent=USER_AGENT).wire())
        sync_task = asyncio.create_task(self._sync_loop(ws))
        try:
            async for raw in ws:
                self.handle_message(raw)
        finally:
            sync_task.cancel()
            try:
                await sync_task
            except (asyncio.CancelledError, websockets.exceptions.ConnectionClosed):
                pass

    async def run(self) -> None:
        """Connect and follow until `close()` or until the reconnect policy gives up."""
        attempt = 0
        self._closing = False
        while not self._closing:
            self._set_state("dial")
            log.info("connecting to %s", self.url)
            try:
                async with websockets.connect(self.url, max_size=2**22) as ws:
                    self._ws = ws
                    self._set_state("opened")
                    attempt = 0
                    # close() may have landed while the dial was in flight
                    if not self._closing:
                        await self._session(ws)
                self._set_state("closed")
            except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as e:
                log.warning("connection error: %r", e)
                self._set_state("failed" if self.state is ConnState.CONNECTING else "closed")
            finally:
                self._ws = None

            if self._closing:
                break
            attempt += 1
            delay = self.policy.next_delay(attempt)
            if delay is None:
                log.error("giving up after %d reconnect attempts", attempt - 1)
                return
            log.info("reconnecting in %.1fs (attempt %d/%d)", delay, attempt, self.policy.max_attempts)
            await asyncio.sleep(delay)

    async def close(self) -> None:
        self._closing = True
        if self._ws is not None:
            await self._ws.close()
