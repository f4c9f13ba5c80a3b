from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Install one stdout handler on the package logger (idempotent)."""
    logger = logging.getLogger("mondrian_sync")
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    if not any(getattr(h, "_mondrian", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        handler._mondrian = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
