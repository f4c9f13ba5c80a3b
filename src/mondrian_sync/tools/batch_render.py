from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from mondrian_sync.composition import CLASSIC_COLORS, PRIMARY_COLORS, GenerationParams
from mondrian_sync.logs import configure_logging
from mondrian_sync.protocol.timebase import now_ms
from mondrian_sync.server.rendering import render_png

log = logging.getLogger(__name__)

PALETTES = {"primary": PRIMARY_COLORS, "classic": CLASSIC_COLORS}


def generate_batch(
    out_dir: Path,
    *,
    amount: int,
    width: int,
    height: int,
    depth: int,
    color_chance: float,
    line_weight: int,
    min_block: int,
    palette: str,
    seed: int,
) -> list[Path]:
    """Render `amount` images with consecutive seeds; returns the files written."""
    out_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for i in range(1, amount + 1):
        params = GenerationParams(
            seed=seed + i - 1,
            depth=depth,
            color_chance=color_chance,
            line_weight=line_weight,
            width=width,
            height=height,
        )
        path = out_dir / f"mondrian_{params.seed}_{i}.png"
        try:
            path.write_bytes(render_png(params, min_size=min_block, palette=PALETTES[palette]))
        except OSError as e:
            log.error("failed to write image %d (%s): %s", i, path, e)
            continue
        log.info("generated %s (%dx%d)", path, width, height)
        written.append(path)
    return written


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Generate Mondrian-style images offline.")
    ap.add_argument("-a", "--amount", type=int, default=1, help="Number of images to generate")
    ap.add_argument("-o", "--output", default="./output", help="Output directory")
    ap.add_argument("--width", type=int, default=3840)
    ap.add_argument("--height", type=int, default=2160)
    ap.add_argument("--depth", type=int, default=5, help="Maximum split depth")
    ap.add_argument("--color-chance", type=float, default=0.3, help="Chance a block is colored")
    ap.add_argument("--line-weight", type=int, default=40, help="Grid line thickness (px)")
    ap.add_argument("--min-block", type=int, default=300, help="Blocks below this on both sides stop splitting")
    ap.add_argument("--palette", choices=sorted(PALETTES), default="classic")
    ap.add_argument("--seed", type=int, default=None, help="Base seed (default: current time in ms)")
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args(argv)

    configure_logging(args.log_level)
    if args.amount <= 0:
        log.error("--amount must be a positive number")
        return 1

    log.info("generating %d image(s) into %s", args.amount, args.output)
    written = generate_batch(
        Path(args.output),
        amount=args.amount,
        width=args.width,
        height=args.height,
        depth=args.depth,
        color_chance=args.color_chance,
        line_weight=args.line_weight,
        min_block=args.min_block,
        palette=args.palette,
        seed=args.seed if args.seed is not None else now_ms(),
    )
    log.info("done: %d/%d written", len(written), args.amount)
    return 0 if written else 1


if __name__ == "__main__":
    sys.exit(main())
