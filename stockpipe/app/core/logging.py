from __future__ import annotations

import logging
import sys

from stockpipe.app.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_level: str | None = None) -> logging.Logger:
    """
    Configure le logger racine du paquet `stockpipe` (console uniquement).
    Idempotent : les handlers existants sont remplacés.
    """
    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO)

    logger = logging.getLogger("stockpipe")
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)

    return logger
