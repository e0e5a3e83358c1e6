"""
Logging configuration using loguru.

The engine itself only ever calls ``loguru.logger``; applications decide
where the output goes by calling one of the setup functions at startup.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from diarist.core.config import Config

_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{line} | {message}"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    fmt: str = "<level>[{level.name}]</level> {message}",
    rotation: str = "5 MB",
    retention: str = "14 days",
) -> None:
    """
    Configure loguru with console and optional file output.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to log file. If None or empty, only logs to stderr.
        fmt: Loguru format string for the console sink.
        rotation: Log file rotation size.
        retention: How long to keep rotated logs.
    """
    level = str(level).upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=fmt)

    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        logger.add(
            log_file,
            level=level,
            format=_FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            enqueue=True,
        )


def setup_logging_from_config(config: Config) -> None:
    """Configure logging from the ``logging.*`` section of a Config.

    A relative ``logging.file`` is resolved against ``paths.log_dir``.
    """
    log_file = config.get("logging.file", "") or None
    if log_file and not os.path.isabs(os.path.expanduser(log_file)):
        log_dir = config.get("paths.log_dir") or os.path.join(config.get_data_dir(), "logs")
        log_file = os.path.join(os.path.expanduser(log_dir), log_file)
    elif log_file:
        log_file = os.path.expanduser(log_file)

    setup_logging(level=config.get("logging.level", "WARNING"), log_file=log_file)
