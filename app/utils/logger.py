"""Process-wide logging setup."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from app.utils.config import get_settings


_LOGGER_INITIALIZED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once; later calls are no-ops."""

    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    resolved_level = (level or get_settings().log_level).upper()

    logging.basicConfig(
        level=resolved_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    _LOGGER_INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger for *name*, configuring logging on first use."""
    configure_logging()
    return logging.getLogger(name)
