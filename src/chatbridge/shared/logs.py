"""Application log file setup."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
RENDERER_LOGGER = "chatbridge.renderer"


def _app_handlers(root: logging.Logger, log_path: Path) -> list[logging.Handler]:
    target = str(log_path.resolve())
    return [
        h
        for h in root.handlers
        if isinstance(h, RotatingFileHandler) and h.baseFilename == target
    ]


def configure_logging(log_path: Path, verbose: bool) -> None:
    """Attach or detach the rotating ``app.log`` handler.

    Safe to call repeatedly; at most one handler per file is installed.
    """
    root = logging.getLogger("chatbridge")
    existing = _app_handlers(root, log_path)

    if not verbose:
        for handler in existing:
            root.removeHandler(handler)
            handler.close()
        return

    root.setLevel(logging.DEBUG)
    if existing:
        return

    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_path, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)


def write_renderer_log(message: str) -> None:
    """Record a message forwarded from the user interface."""
    logging.getLogger(RENDERER_LOGGER).info(message)
