from __future__ import annotations

import logging
from typing import Callable, Optional

from mondrian_sync.protocol.messages import Join, Sync, SyncRequest, parse_client_message
from mondrian_sync.protocol.timebase import now_ms

log = logging.getLogger(__name__)


def dispatch(
    client_id: str,
    raw: str | bytes,
    *,
    now: Callable[[], int] = now_ms,
) -> Optional[dict]:
    """
    Handle one client frame; returns the reply for the sender, if any.

    Raises pydantic.ValidationError for malformed frames (the caller logs and moves on).
    """
    msg = parse_client_message(raw)
    if isinstance(msg, SyncRequest):
        return Sync(server_time=now(), client_time=msg.client_time).wire()
    if isinstance(msg, Join):
        log.info("client %s joined from %s", client_id, msg.user_agent or "unknown")
    return None
