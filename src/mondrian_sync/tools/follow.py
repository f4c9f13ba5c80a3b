from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, TextIO

from mondrian_sync.client.config import get_client_settings
from mondrian_sync.client.reconnect import ReconnectPolicy
from mondrian_sync.client.socket_client import MondrianClient
from mondrian_sync.composition import GenerationParams
from mondrian_sync.logs import configure_logging
from mondrian_sync.protocol.messages import Generate
from mondrian_sync.protocol.timebase import now_ms
from mondrian_sync.server.rendering import render_png

log = logging.getLogger(__name__)


class Follower:
    """Client callbacks: save compositions as PNG, append events to JSONL, echo to stdout."""

    def __init__(self, *, out_dir: Optional[Path], record: Optional[TextIO], echo: bool) -> None:
        self.out_dir = out_dir
        self.record = record
        self.echo = echo
        if out_dir is not None:
            out_dir.mkdir(parents=True, exist_ok=True)

    def on_event(self, msg) -> None:
        wire = msg.wire()
        if self.echo:
            print(f"[follow] event={wire['event']} msg={wire}")
        if self.record is not None:
            self.record.write(json.dumps({"ts": now_ms(), "msg": wire}, ensure_ascii=False) + "\n")
            self.record.flush()

    def on_generate(self, event: Generate, params: GenerationParams) -> Optional[Path]:
        if self.out_dir is None:
            return None
        path = self.out_dir / f"mondrian_{event.seed}.png"
        path.write_bytes(render_png(params))
        log.info("saved %s", path)
        return path


async def follow(client: MondrianClient) -> None:
    try:
        await client.run()
    finally:
        await client.close()


def main() -> None:
    settings = get_client_settings()
    ap = argparse.ArgumentParser(description="Follow a mondrian-sync server.")
    ap.add_argument("--ws", default=settings.server_url, help="WebSocket URL, e.g. ws://127.0.0.1:3001/ws")
    ap.add_argument("--width", type=int, default=settings.width, help="Local canvas width")
    ap.add_argument("--height", type=int, default=settings.height, help="Local canvas height")
    ap.add_argument("--out", default=None, help="Directory for rendered PNGs")
    ap.add_argument("--record", default=None, help="Append received events to this JSONL file")
    ap.add_argument("--print", action="store_true", help="Print received events to stdout")
    args = ap.parse_args()

    configure_logging(settings.log_level)
    record: Optional[TextIO] = None
    if args.record:
        rec_path = Path(args.record)
        rec_path.parent.mkdir(parents=True, exist_ok=True)
        record = rec_path.open("a", encoding="utf-8")

    follower = Follower(
        out_dir=Path(args.out) if args.out else None,
        record=record,
        echo=args.print,
    )
    client = MondrianClient(
        args.ws,
        width=args.width,
        height=args.height,
        sync_interval_s=settings.sync_interval_ms / 1000,
        policy=ReconnectPolicy(
            max_attempts=settings.reconnect_attempts,
            delay_s=settings.reconnect_delay_ms / 1000,
        ),
        on_generate=follower.on_generate,
        on_event=follower.on_event,
    )
    try:
        asyncio.run(follow(client))
    except KeyboardInterrupt:
        pass
    finally:
        if record is not None:
            record.close()


if __name__ == "__main__":
    main()
