"""
Logging setup.

Every module asks for a logger through get_logger(), which keeps all
application loggers under the "retail" namespace so a single handler
configured here covers them.
"""
from __future__ import annotations

import logging
import sys

from retail_backend.app.core.config import settings

ROOT_LOGGER = "retail"


def setup_logging(log_level: str | None = None) -> logging.Logger:
    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
