# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Logging configuration for Rental Relist."""

import logging
import sys
from typing import TextIO

from src.config import get_settings

# Default log format
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries kept at WARNING regardless of the application level
QUIET_LIBRARIES = ("httpx", "httpcore", "aiosqlite")


def get_log_level() -> int:
    """Map the configured level name to a logging constant, INFO if unknown."""
    level = logging.getLevelNamesMapping().get(get_settings().log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(
    level: int | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure application logging.

    Replaces any handlers on the root logger, so calling it again (for
    example on app restart in tests) does not duplicate output.

    Args:
        level: Logging level. Defaults to settings value.
        stream: Output stream. Defaults to stderr.
    """
    if level is None:
        level = get_log_level()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root_logger.addHandler(handler)

    _configure_library_loggers(level)


def _configure_library_loggers(app_level: int) -> None:
    # SQL statements only when debugging
    sqlalchemy_level = logging.DEBUG if app_level == logging.DEBUG else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(sqlalchemy_level)

    # Uvicorn: match app level but not more verbose than INFO
    uvicorn_level = max(app_level, logging.INFO)
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).setLevel(uvicorn_level)

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
