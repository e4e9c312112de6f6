"""Centralized logging configuration."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


LOG_FORMAT = " | ".join(
    (
        "<lk>{time:YYYY-MM-DD HH:mm:ss.SSS}</>",
        "<lvl>{level:<8}</>",
        "<c>{module}:{function}:{line}</> - {message}",
    )
)


def configure_logging(level: str = "WARNING", log_file: Optional[str | Path] = None) -> None:
    # Drop loguru's default handler so records are not printed twice.
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)
    if log_file:
        logger.add(
            str(log_file),
            format=LOG_FORMAT,
            level=level,
            rotation="1 day",
            retention="30 days",
            compression="zip",
        )
