"""Loguru setup shared by the CLI and the HTTP service."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from config import Settings, get_settings

CONSOLE_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def configure_logging(
    settings: Settings | None = None,
    level: str | None = None,
    log_file: str | None = None,
) -> None:
    """
    Replace loguru's default sink with stderr plus an optional rotating file.

    `level` overrides `settings.log_level` for the console only; the file
    sink always records from DEBUG.
    """
    settings = settings or get_settings()
    logger.remove()
    logger.add(sys.stderr, level=level or settings.log_level, format=CONSOLE_FORMAT)

    path = log_file or settings.log_file
    if path:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(path, level="DEBUG", format=FILE_FORMAT, rotation="10 MB", retention=5)
