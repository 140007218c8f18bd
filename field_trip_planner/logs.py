"""Shared logger factory so every module formats output the same way."""
from __future__ import annotations

import logging
import os

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a module logger with a single stream handler attached.

    The level comes from ``PLANNER_LOG_LEVEL`` (default ``INFO``). Loggers do
    not propagate to the root logger so uvicorn/pytest handlers do not print
    every line twice.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    level = os.getenv("PLANNER_LOG_LEVEL", "INFO").upper()
    logger.setLevel(getattr(logging, level, logging.INFO))
    logger.propagate = False
    return logger
