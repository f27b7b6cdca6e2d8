"""Logging configuration using loguru.

The engine logs through ``loguru.logger`` directly. Entry points (the CLI
and the web app) call :func:`setup_logging` once at startup.
"""

from __future__ import annotations

import sys
from typing import Optional

from loguru import logger


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[str] = None,
    fmt: str = "<level>[{level.name}]</level> {message}",
) -> None:
    """Configure loguru with a stderr sink and an optional file sink.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to a log file. If None, only logs to stderr.
        fmt: Loguru format string for the stderr sink.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=fmt)
    if log_file:
        logger.add(
            log_file,
            level=level.upper(),
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function} | {message}",
            rotation="10 MB",
            retention="7 days",
        )
