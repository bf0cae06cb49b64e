from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import StatuslineConfig

LOGGER_NAME = "claude_statusline"
ROTATED_SUFFIX = ".old"

logger = logging.getLogger(LOGGER_NAME)
logger.propagate = False
logger.addHandler(logging.NullHandler())


class _SingleLineFormatter(logging.Formatter):
    """Keeps each record on one line so the error log stays line-oriented."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        return " | ".join(part for part in text.splitlines() if part.strip())


def _rotated_name(default_name: str) -> str:
    # RotatingFileHandler asks for "<log>.1"; keep a single "<log>.old" instead.
    base, _, _ = default_name.rpartition(".")
    return base + ROTATED_SUFFIX


def configure_logging(config: StatuslineConfig, error_log: Optional[Path]) -> None:
    """Route warnings to the shared, size-capped error log; debug also echoes to stderr.

    Rollover is per process. A process that opened the log before another one
    rotated it keeps appending to the renamed ``.old`` file, and its own later
    rollover replaces that file. Records can be lost that way, but the two files
    never grow past the cap.
    """
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG if config.debug else logging.INFO)

    if error_log is not None:
        try:
            file_handler = RotatingFileHandler(
                str(error_log),
                maxBytes=max(config.error_log_max_bytes, 1024),
                backupCount=1,
                encoding="utf-8",
            )
        except OSError:
            file_handler = None
        if file_handler is not None:
            file_handler.namer = _rotated_name
            file_handler.setLevel(logging.WARNING)
            file_handler.setFormatter(
                _SingleLineFormatter("%(asctime)s [pid %(process)d] %(levelname)s %(message)s")
            )
            logger.addHandler(file_handler)

    if config.debug:
        stream = logging.StreamHandler()
        stream.setLevel(logging.DEBUG)
        stream.setFormatter(logging.Formatter("[claude-statusline] %(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(stream)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())


def reset_logging() -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.addHandler(logging.NullHandler())


__all__ = ["configure_logging", "logger", "reset_logging"]
