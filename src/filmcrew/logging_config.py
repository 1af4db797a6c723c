"""Logging setup shared by the CLI and the web server."""

from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
DATE_FORMAT = "%H:%M:%S"


def setup_logging(level: str | None = None, name: str = "filmcrew") -> logging.Logger:
    """Attach a console handler to the package logger.

    The level falls back to ``FILMCREW_LOG_LEVEL`` and then INFO. Calling it
    again only updates the level.
    """
    level = level or os.getenv("FILMCREW_LOG_LEVEL", "INFO")
    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(log_level)
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    return logger
