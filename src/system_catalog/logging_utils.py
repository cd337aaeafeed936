"""Logging helpers for the System Catalog API."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from system_catalog.config import LoggingSettings, load_settings

_logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structured logging for the server."""
    if settings is None:
        settings = load_settings().logging
    level = getattr(logging, settings.level.upper(), logging.INFO)

    handlers: list[logging.Handler] = []

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    handlers.append(stream_handler)

    if settings.file:
        try:
            Path(settings.file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(settings.file)
            file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
            handlers.append(file_handler)
        except OSError as exc:
            _logger.warning("Failed to open log file %s: %s", settings.file, exc)

    logging.basicConfig(level=level, handlers=handlers, force=True)
