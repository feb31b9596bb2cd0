"""Logging setup for the docvault CLI: rich console output plus an optional rotating file."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from docvault.config import LoggingSettings

_FILE_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s.%(funcName)s  %(message)s"
_NOISY_LOGGERS = ("sqlalchemy", "sqlalchemy.engine", "sqlalchemy.pool")


def _level(value: str) -> int:
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(settings: LoggingSettings, *, console: Console | None = None) -> None:
    """Configure the ``docvault`` logger hierarchy.

    Safe to call more than once; handlers installed by an earlier call are
    replaced so repeated CLI invocations in one process do not duplicate output.

    Args:
        settings: Logging section of the loaded configuration.
        console: Console the rich handler writes to; stderr when omitted.
    """
    level = _level(settings.level)
    logger = logging.getLogger("docvault")
    for handler in list(logger.handlers):
        if getattr(handler, "_docvault_handler", False):
            logger.removeHandler(handler)
            handler.close()

    logger.setLevel(level)

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    rich_handler.setLevel(level)
    rich_handler._docvault_handler = True  # type: ignore[attr-defined]
    logger.addHandler(rich_handler)

    if settings.file:
        path = Path(settings.file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=settings.max_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        file_handler._docvault_handler = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


__all__ = ["setup_logging"]
