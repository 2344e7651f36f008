"""Loguru sink setup driven by AppSettings."""

from __future__ import annotations

import sys

from loguru import logger

from fieldsync.core.config import AppSettings


def configure_logging(settings: AppSettings | None = None) -> None:
    """Replace the default loguru sinks with stderr (and optional file) at the configured level."""
    if settings is None:
        settings = AppSettings()

    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB", retention="10 days")
