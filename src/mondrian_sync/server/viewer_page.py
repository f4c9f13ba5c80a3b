from __future__ import annotations

# ruff: noqa: E501
import json

from mondrian_sync.composition import BACKGROUND_COLOR, LINE_COLOR, MIN_BLOCK_SIZE, PRIMARY_COLORS
from mondrian_sync.composition.partition import SPLIT_MIN, SPLIT_SPAN, STOP_CHANCE
from mondrian_sync.composition.seeded_random import LCG_INCREMENT, LCG_MODULUS, LCG_MULTIPLIER
from mondrian_sync.protocol.constants import (
    E_AUDIO,
    E_GENERATE,
    E_JOIN,
    E_SYNC,
    E_SYNC_REQUEST,
    E_USERS,
    E_WELCOME,
)


def viewer_config(*, sync_interval_ms: int, reconnect_attempts: int, reconnect_delay_ms: int) -> dict:
    """Everything the page needs to replay a composition in the browser."""
    return {
        "syncIntervalMs": sync_interval_ms,
        "reconnectAttempts": reconnect_attempts,
        "reconnectDelayMs": reconnect_delay_ms,
        "lcg": {"modulus": LCG_MODULUS, "multiplier": LCG_MULTIPLIER, "increment": LCG_INCREMENT},
        "minBlock": MIN_BLOCK_SIZE,
        "stopChance": STOP_CHANCE,
        "splitMin": SPLIT_MIN,
        "splitSpan": SPLIT_SPAN,
        "palette": list(PRIMARY_COLORS),
        "background": BACKGROUND_COLOR,
        "line": LINE_COLOR,
        "events": {
            "welcome": E_WELCOME,
            "generate": E_GENERATE,
            "audio": E_AUDIO,
            "sync": E_SYNC,
            "users": E_USERS,
            "join": E_JOIN,
            "syncRequest": E_SYNC_REQUEST,
        },
    }


def render_viewer_html(*, sync_interval_ms: int = 30000, reconnect_attempts: int = 10, reconnect_delay_ms: int = 1000) -> str:
    """
    Browser viewer (single page app).

    Follows the broadcast over `/ws` and draws each composition itself on a canvas at the window
    size: the same generator, partition and draw order as `mondrian_sync.composition`, with the
    constants injected from there. Nothing but the broadcast crosses the network per frame.
    Kept in a separate module so `app.py` stays focused on transport/session logic.
    """
    cfg = json.dumps(
        viewer_config(
            sync_interval_ms=sync_interval_ms,
            reconnect_attempts=reconnect_attempts,
            reconnect_delay_ms=reconnect_delay_ms,
        )
    )
    return f"""
<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width,initial-scale=1" />
    <title>mondrian-sync viewer</title>
    <style>
      html, body {{ height: 100%; margin: 0; background: #ffffff; font-family: ui-sans-serif, system-ui, -apple-system; overflow: hidden; }}
      #art {{ position: absolute; inset: 0; width: 100%; height: 100%; display: block; }}
      #bar {{ position: fixed; left: 12px; bottom: 12px; padding: 8px 12px; border-radius: 8px; background: rgba(0,0,0,0.72); color: #f0f0f0; font-size: 12px; line-height: 1.5; transition: opacity 0.4s; }}
      #bar.hidden {{ opacity: 0; }}
      #bar code {{ color: #ffd866; }}
      #bar a {{ color: #9ecbff; }}
    </style>
  </head>
  <body>
    <canvas id="art"></canvas>
    <div id="bar">
      <div id="status">connecting…</div>
      <div>users: <code id="users">0</code> · seed: <code id="seed">-</code> · offset: <code id="offset">0</code>ms · <a id="png" href="#" target="_blank">png</a></div>
      <div>click to enable sound</div>
    </div>
    <script>
      const cfg = {cfg};
      const ev = cfg.events;
      const statusEl = document.getElementById("status");
      const usersEl = document.getElementById("users");
      const seedEl = document.getElementById("seed");
      const offsetEl = document.getElementById("offset");
      const pngEl = document.getElementById("png");
      const canvas = document.getElementById("art");
      const ctx = canvas.getContext("2d");
      const bar = document.getElementById("bar");

      // Seeded generator; every intermediate value is an exact double.
      function seededRandom(seed) {{
        let state = seed % cfg.lcg.modulus;
        if (state <= 0) state += cfg.lcg.modulus;
        return () => {{
          state = (state * cfg.lcg.multiplier + cfg.lcg.increment) % cfg.lcg.modulus;
          return state / cfg.lcg.modulus;
        }};
      }}

      function cutH(b, rnd) {{
        const cut = Math.floor(b.y + b.h * (rnd() * cfg.splitSpan + cfg.splitMin));
        return [{{ x: b.x, y: b.y, w: b.w, h: cut - b.y }}, {{ x: b.x, y: cut, w: b.w, h: b.y + b.h - cut }}];
      }}

      function cutV(b, rnd) {{
        const cut = Math.floor(b.x + b.w * (rnd() * cfg.splitSpan + cfg.splitMin));
        return [{{ x: b.x, y: b.y, w: cut - b.x, h: b.h }}, {{ x: cut, y: b.y, w: b.x + b.w - cut, h: b.h }}];
      }}

      // Draw order per node must match composition/partition.py exactly.
      function split(b, depth, maxDepth, rnd) {{
        const min = cfg.minBlock;
        if (depth >= maxDepth) return null;
        if ((b.w < min && b.h < min) || (rnd() < cfg.stopChance && depth > 0)) return null;
        if (b.h > b.w) return b.h > min ? cutH(b, rnd) : null;
        if (b.w > b.h) return b.w > min ? cutV(b, rnd) : null;
        if (b.w > min && b.h > min) return rnd() < 0.5 ? cutV(b, rnd) : cutH(b, rnd);
        return null;
      }}

      function partition(rect, maxDepth, rnd) {{
        const out = [];
        const stack = [[rect, 0]];
        while (stack.length) {{
          const [b, d] = stack.pop();
          const children = split(b, d, maxDepth, rnd);
          if (!children) {{ out.push(b); continue; }}
          stack.push([children[1], d + 1]);
          stack.push([children[0], d + 1]);
        }}
        return out;
      }}

      let current = null;
      function draw(params) {{
        const w = canvas.width, h = canvas.height;
        const rnd = seededRandom(params.seed);
        ctx.fillStyle = cfg.background;
        ctx.fillRect(0, 0, w, h);
        const blocks = partition({{ x: 0, y: 0, w, h }}, params.depth, rnd);
        for (const b of blocks) {{
          let color = cfg.background;
          if (rnd() < params.colorChance) color = cfg.palette[Math.floor(rnd() * cfg.palette.length)];
          ctx.fillStyle = color;
          ctx.fillRect(b.x, b.y, b.w, b.h);
        }}
        if (params.lineWeight > 0) {{
          ctx.strokeStyle = cfg.line;
          ctx.lineWidth = params.lineWeight;
          ctx.lineJoin = "miter";
          for (const b of blocks) ctx.strokeRect(b.x, b.y, b.w, b.h);
        }}
      }}

      function fitCanvas() {{
        canvas.width = window.innerWidth;
        canvas.height = window.innerHeight;
        if (current) draw(current);
      }}
      window.addEventListener("resize", fitCanvas);

      function previewHref(p) {{
        const qs = new URLSearchParams({{
          seed: p.seed, depth: p.depth, colorChance: p.colorChance,
          lineWeight: p.lineWeight, width: canvas.width, height: canvas.height,
        }});
        return `/preview.png?${{qs}}`;
      }}

      // Tones: one oscillator per frequency, browsers only allow sound after a user gesture.
      let audioCtx = null;
      document.addEventListener("click", () => {{
        if (!audioCtx) audioCtx = new AudioContext();
        audioCtx.resume();
      }});
      function playTones(msg) {{
        if (!audioCtx || audioCtx.state !== "running") return;
        const t0 = audioCtx.currentTime;
        const gain = audioCtx.createGain();
        gain.gain.setValueAtTime(0.08 / msg.frequencies.length, t0);
        gain.gain.linearRampToValueAtTime(0, t0 + msg.duration);
        gain.connect(audioCtx.destination);
        for (const f of msg.frequencies) {{
          const osc = audioCtx.createOscillator();
          osc.frequency.value = f;
          osc.connect(gain);
          osc.start(t0);
          osc.stop(t0 + msg.duration);
        }}
      }}

      // Clock: crude offset from welcome, refined by each sync round (midpoint estimate).
      let clockOffset = 0;
      let syncTimer = null;

      function wsUrl() {{
        const proto = (location.protocol === "https:") ? "wss" : "ws";
        return `${{proto}}://${{location.host}}/ws`;
      }}

      function requestSync(ws) {{
        if (ws.readyState !== 1) return;
        ws.send(JSON.stringify({{ event: ev.syncRequest, clientTime: Date.now() }}));
      }}

      let attempts = 0;
      function connect() {{
        statusEl.textContent = `connecting… ${{wsUrl()}}`;
        const ws = new WebSocket(wsUrl());
        ws.onopen = () => {{
          attempts = 0;
          statusEl.textContent = "connected";
          ws.send(JSON.stringify({{ event: ev.join, userAgent: navigator.userAgent }}));
          requestSync(ws);
          syncTimer = setInterval(() => requestSync(ws), cfg.syncIntervalMs);
        }};
        ws.onclose = () => {{
          if (syncTimer) {{ clearInterval(syncTimer); syncTimer = null; }}
          attempts += 1;
          if (attempts > cfg.reconnectAttempts) {{
            statusEl.textContent = "disconnected; giving up";
            return;
          }}
          statusEl.textContent = `disconnected; retry ${{attempts}}/${{cfg.reconnectAttempts}}…`;
          setTimeout(connect, cfg.reconnectDelayMs);
        }};
        ws.onmessage = (m) => {{
          let msg;
          try {{ msg = JSON.parse(m.data); }} catch {{ return; }}
          const e = msg.event;
          if (e === ev.welcome) {{
            clockOffset = msg.serverTime - Date.now();
          }} else if (e === ev.sync) {{
            const rtt = Date.now() - msg.clientTime;
            if (rtt >= 0) clockOffset = msg.serverTime - (msg.clientTime + rtt / 2);
          }} else if (e === ev.users) {{
            usersEl.textContent = msg.count;
          }} else if (e === ev.generate) {{
            current = msg;
            seedEl.textContent = msg.seed;
            draw(msg);
            pngEl.href = previewHref(msg);
          }} else if (e === ev.audio) {{
            playTones(msg);
          }}
          offsetEl.textContent = Math.round(clockOffset);
        }};
      }}

      // Auto-hide the status bar after 3s without mouse movement.
      let hideTimeout = null;
      document.addEventListener("mousemove", () => {{
        bar.classList.remove("hidden");
        if (hideTimeout) clearTimeout(hideTimeout);
        hideTimeout = setTimeout(() => bar.classList.add("hidden"), 3000);
      }});

      fitCanvas();
      connect();
    </script>
  </body>
</html>
"""
