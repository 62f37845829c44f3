"""Package-wide logger.

Modules import the shared instance (``from clauseguard.utils.logger import logger``)
instead of creating their own so a single handler/level governs the whole pipeline.
"""
from __future__ import annotations
import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str = "clauseguard", level: str | None = None) -> logging.Logger:
    log = logging.getLogger(name)
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
        log.propagate = False
    log.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    return log


logger = get_logger()
