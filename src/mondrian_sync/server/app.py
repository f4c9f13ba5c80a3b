from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Body, FastAPI, Query, Request, WebSocket
from fastapi.responses import HTMLResponse, Response
from pydantic import ValidationError

from mondrian_sync.composition import GenerationParams
from mondrian_sync.logs import configure_logging
from mondrian_sync.protocol.constants import WS_CLOSE_TRY_AGAIN_LATER
from mondrian_sync.protocol.messages import Welcome
from mondrian_sync.protocol.timebase import now_ms

from .config import Settings, get_settings
from .dispatch import dispatch
from .rendering import render_png
from .scheduler import GenerationScheduler
from .sessions import Hub, SessionRegistry, user_count_broadcaster
from .viewer_page import render_viewer_html

log = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    hub = Hub()
    registry = SessionRegistry(on_change=user_count_broadcaster(hub))
    scheduler = GenerationScheduler(
        registry,
        hub.broadcast,
        interval_ms=settings.generation_interval_ms,
        startup_delay_ms=settings.startup_delay_ms,
        audio_duration_s=settings.audio_duration_s,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.started_at = time.monotonic()
        scheduler.start()
        try:
            yield
        finally:
            await scheduler.stop()

    app = FastAPI(title="mondrian-sync", lifespan=lifespan)
    app.state.settings = settings
    app.state.hub = hub
    app.state.registry = registry
    app.state.scheduler = scheduler
    app.state.started_at = time.monotonic()

    @app.get("/health")
    def health(request: Request):
        return {
            "status": "ok",
            "clients": registry.count(),
            "uptimeSeconds": time.monotonic() - request.app.state.started_at,
        }

    @app.get("/", response_class=HTMLResponse)
    def viewer():
        return HTMLResponse(render_viewer_html(sync_interval_ms=settings.sync_interval_ms))

    @app.get("/preview.png")
    def preview(
        seed: int,
        depth: int = Query(5, ge=1, le=12),
        color_chance: float = Query(0.3, alias="colorChance", ge=0.0, le=1.0),
        line_weight: int = Query(20, alias="lineWeight", ge=0, le=200),
        width: int = Query(1920, ge=1),
        height: int = Query(1080, ge=1),
    ):
        side = settings.preview_max_side
        params = GenerationParams(
            seed=seed,
            depth=depth,
            color_chance=color_chance,
            line_weight=line_weight,
            width=min(width, side),
            height=min(height, side),
        )
        return Response(content=render_png(params), media_type="image/png")

    @app.post("/schedule")
    async def schedule(interval_ms: int = Body(..., alias="intervalMs", embed=True, gt=0)):
        scheduler.reschedule(interval_ms)
        return {"intervalMs": scheduler.interval_ms}

    @app.websocket("/ws")
    async def ws_endpoint(ws: WebSocket):
        await ws.accept()
        if settings.max_clients and registry.count() >= settings.max_clients:
            log.warning("refusing connection: %d clients connected", registry.count())
            await ws.close(code=WS_CLOSE_TRY_AGAIN_LATER)
            return

        client_id = uuid.uuid4().hex[:12]
        hub.attach(client_id, ws)
        log.info("client connected: %s", client_id)
        await hub.send(client_id, Welcome(client_id=client_id, server_time=now_ms()).wire())
        await registry.add(client_id)

        try:
            while True:
                frame = await ws.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                raw = frame.get("text")
                if raw is None:
                    log.warning("[ws:%s] ignoring binary frame", client_id)
                    continue
                if settings.debug_log_msgs:
                    log.debug("[ws:%s] in %s", client_id, raw)
                try:
                    reply = dispatch(client_id, raw)
                except ValidationError as e:
                    log.warning("[ws:%s] ignoring malformed frame: %s", client_id, e.errors()[:1])
                    continue
                if reply is not None:
                    await hub.send(client_id, reply)
        finally:
            hub.detach(client_id)
            await registry.remove(client_id)
            log.info("client disconnected: %s", client_id)

    return app


class _Server(uvicorn.Server):
    """Stops the broadcast timer as soon as a shutdown signal arrives, before listeners close."""

    def __init__(self, config: uvicorn.Config, scheduler: GenerationScheduler) -> None:
        super().__init__(config)
        self._scheduler = scheduler

    def handle_exit(self, sig, frame) -> None:
        self._scheduler.cancel()
        super().handle_exit(sig, frame)


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    log.info("mondrian server on port %d (health: /health, websocket: /ws)", settings.port)
    config = uvicorn.Config(app, host=settings.host, port=settings.port, log_level="info")
    _Server(config, app.state.scheduler).run()


if __name__ == "__main__":
    main()
