from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Protocol

from mondrian_sync.protocol.messages import Users
from mondrian_sync.protocol.timebase import now_ms

log = logging.getLogger(__name__)


class TextSocket(Protocol):
    async def send_text(self, data: str) -> None: ...


def encode(msg: dict) -> str:
    return json.dumps(msg, separators=(",", ":"), ensure_ascii=False)


@dataclass
class ClientSession:
    id: str
    connected_at: int


class Hub:
    """Live websocket per session id; fan-out is best effort."""

    def __init__(self) -> None:
        self._sockets: dict[str, TextSocket] = {}

    def __contains__(self, client_id: str) -> bool:
        return client_id in self._sockets

    def __len__(self) -> int:
        return len(self._sockets)

    def attach(self, client_id: str, ws: TextSocket) -> None:
        self._sockets[client_id] = ws

    def detach(self, client_id: str) -> None:
        self._sockets.pop(client_id, None)

    async def send(self, client_id: str, msg: dict) -> bool:
        ws = self._sockets.get(client_id)
        if ws is None:
            return False
        try:
            await ws.send_text(encode(msg))
        except Exception as e:
            log.info("send to %s failed (%r); dropping socket", client_id, e)
            self.detach(client_id)
            return False
        return True

    async def broadcast(self, msg: dict) -> int:
        """Send `msg` to every socket; returns how many sends went through. No retries."""
        dead: list[str] = []
        sent = 0
        data = encode(msg)
        for client_id, ws in list(self._sockets.items()):
            try:
                await ws.send_text(data)
                sent += 1
            except Exception:
                dead.append(client_id)
        for client_id in dead:
            log.info("dropping unreachable socket %s", client_id)
            self.detach(client_id)
        return sent


@dataclass
class SessionRegistry:
    """
    Connected client identities. Every add/remove reports the new count through `on_change`.

    Mutated only from the event loop (connection handlers), so no lock.
    """

    on_change: Optional[Callable[[int], Awaitable[None]]] = None
    clock: Callable[[], int] = now_ms
    _sessions: dict[str, ClientSession] = field(default_factory=dict)

    async def add(self, client_id: str) -> ClientSession:
        session = self._sessions.get(client_id)
        if session is None:
            session = ClientSession(id=client_id, connected_at=self.clock())
            self._sessions[client_id] = session
        await self._changed()
        return session

    async def remove(self, client_id: str) -> bool:
        if self._sessions.pop(client_id, None) is None:
            return False
        await self._changed()
        return True

    def count(self) -> int:
        return len(self._sessions)

    async def _changed(self) -> None:
        if self.on_change is not None:
            await self.on_change(self.count())


def user_count_broadcaster(hub: Hub) -> Callable[[int], Awaitable[None]]:
    """`on_change` hook that tells every session the current head count."""

    async def _announce(count: int) -> None:
        await hub.broadcast(Users(count=count).wire())

    return _announce
