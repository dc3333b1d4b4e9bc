"""Logging setup. The TUI owns the terminal, so records go to a rotating file."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s:%(lineno)d - %(message)s"


def setup_logging(level: str = "WARNING", log_file: str | Path | None = None) -> logging.Logger:
    """Configure the ``vpnwatch`` logger.

    With no ``log_file`` records go to stderr, which is what the one-shot
    CLI commands want.
    """
    logger = logging.getLogger("vpnwatch")
    logger.setLevel(getattr(logging, str(level).upper(), logging.WARNING))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = RotatingFileHandler(path, maxBytes=5 * 1024 * 1024, backupCount=3)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
