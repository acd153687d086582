"""Logging configuration for the encdetect CLI."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from encdetect.config.models import LoggingSettings

_FILE_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def configure_logging(
    settings: LoggingSettings,
    *,
    level_override: str | None = None,
    console: Console | None = None,
) -> logging.Logger:
    """Attach handlers to the ``encdetect`` logger and return it.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        settings: Logging section of the loaded configuration.
        level_override: Level name taking precedence over ``settings.level``.
        console: Console the rich handler writes to; defaults to stderr.

    Returns:
        logging.Logger: The package logger.
    """
    logger = logging.getLogger("encdetect")
    level_name = (level_override or settings.level).upper()
    logger.setLevel(getattr(logging, level_name, logging.WARNING))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(
        RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
    )

    if settings.file:
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=settings.max_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging"]
