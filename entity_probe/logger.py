# entity_probe/logger.py
"""Logging for **EntityProbe**.

All modules log through one named logger::

    from entity_probe.logger import logger
    logger.debug("Resolved %s", host)

Records go to stderr (stdout is reserved for CLI results) and, when a path is
given, to a size-rotated file. :func:`configure` may be called again at any
time; the CLI does so once its options are parsed.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, List, Union

LOGGER_NAME: Final[str] = "EntityProbe"
DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

#: rotation limits of the optional log file
MAX_LOG_BYTES: Final[int] = 5 * 1024 * 1024
LOG_BACKUPS: Final[int] = 3

_LevelT = Union[int, str]


def _handlers(log_file: str | Path | None) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        handlers.append(
            RotatingFileHandler(
                filename=str(log_file),
                maxBytes=MAX_LOG_BYTES,
                backupCount=LOG_BACKUPS,
                encoding="utf-8",
            )
        )
    return handlers


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Replace the handlers of the project logger.

    Parameters
    ----------
    level
        Numeric or textual level (``"DEBUG"``, ``logging.INFO`` …).
    log_file
        Optional logfile; *None* keeps output on stderr only.
    log_format
        Format string shared by every handler.
    """
    lg = logging.getLogger(LOGGER_NAME)
    lg.setLevel(level)
    for handler in list(lg.handlers):
        lg.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(log_format)
    for handler in _handlers(log_file):
        handler.setFormatter(formatter)
        lg.addHandler(handler)

    lg.propagate = False
    return lg


def init_logging(
    level: _LevelT = "WARNING",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Library default: warnings and errors on stderr, no file."""
    return configure(level=level, log_file=log_file, log_format=log_format)


logger: logging.Logger = init_logging()

__all__ = ["DEFAULT_FORMAT", "LOGGER_NAME", "configure", "init_logging", "logger"]
