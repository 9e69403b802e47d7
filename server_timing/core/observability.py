"""Logging setup for applications embedding the timing middleware.

- LOG_LEVEL (default: INFO): root logger level, read from the process
  environment first and from Settings (``.env``) second.
"""

from __future__ import annotations

import logging
import os

from pythonjsonlogger import jsonlogger

from .config import settings

LOG_FORMAT = "%(levelname)s %(name)s %(message)s"


def setup_logging() -> None:
    """Configure structured JSON logging on the root logger."""
    handler = logging.StreamHandler()
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))
    root = logging.getLogger()
    root.handlers = [handler]
    level_name = (os.getenv("LOG_LEVEL") or settings.LOG_LEVEL).upper()
    level = getattr(logging, level_name, logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    root.setLevel(level)
