"""Logging setup for the risk calculator."""
from __future__ import annotations

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from riskcalc.core.config import SystemConfig

_LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


def _daily_file_handler(path: Path, backup_days: int) -> TimedRotatingFileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=path,
        when="midnight",
        backupCount=backup_days,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    return handler


def setup_logging(
    name: str = "riskcalc",
    level: str = "INFO",
    log_dir: str | None = None,
    backup_days: int = 14,
) -> logging.Logger:
    """Configure and return the named logger.

    Module loggers under ``riskcalc.*`` propagate to the ``riskcalc``
    logger, so configuring it once covers the whole package. Calling it
    again only updates the level.

    Args:
        name: Logger name; also used as the log file stem.
        level: Level name, case-insensitive. Unknown names fall back to INFO.
        log_dir: Directory for a daily rolling log file. Console only when None.
        backup_days: Rotated files kept before the oldest is deleted.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if logger.handlers:
        return logger

    formatter = logging.Formatter(_LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_dir:
        handlers.append(_daily_file_handler(Path(log_dir) / f"{name}.log", backup_days))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def setup_logging_from_config(system: SystemConfig, name: str = "riskcalc") -> logging.Logger:
    """Apply the ``system`` section of the settings file."""
    return setup_logging(
        name=name,
        level=system.log_level,
        log_dir=system.log_dir,
        backup_days=system.log_backup_days,
    )
