"""Logging configuration using loguru.

Everything goes to stderr so that ``list --format json`` output on stdout
stays machine readable.  SQLAlchemy's stdlib loggers are bridged into loguru;
no other stdlib logging is touched.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

_SHORT_FORMAT = "<level>{level: <8}</level> | <level>{message}</level>"
_DEBUG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

_BRIDGED_LOGGERS = ("sqlalchemy",)


class _SQLAlchemyHandler(logging.Handler):
    """Forward stdlib records to loguru, prefixed with the emitting logger."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(exception=record.exc_info).log(level, "[{}] {}", record.name, record.getMessage())


def setup_logging(level: str = "WARNING") -> None:
    """Configure loguru as the sole logging sink.  Call once, from the CLI."""
    level = level.upper()

    logger.remove()
    logger.add(sys.stderr, level=level, format=_DEBUG_FORMAT if level in ("TRACE", "DEBUG") else _SHORT_FORMAT)

    # SQL echo only surfaces at DEBUG; below that the engines stay quiet.
    stdlib_level = logging.DEBUG if level in ("TRACE", "DEBUG") else logging.WARNING
    for name in _BRIDGED_LOGGERS:
        bridged = logging.getLogger(name)
        bridged.handlers = [_SQLAlchemyHandler()]
        bridged.setLevel(stdlib_level)
        bridged.propagate = False

    logger.debug("Logging initialised (level={})", level)
