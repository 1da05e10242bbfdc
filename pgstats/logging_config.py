from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from .config import Settings

DEFAULT_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _build_handler(settings: Settings) -> logging.Handler:
    if settings.log_file:
        return RotatingFileHandler(
            settings.log_file,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
        )
    return logging.StreamHandler(sys.stderr)


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level '{name}'")
    return level


def configure_logging(settings: Settings) -> logging.Logger:
    """Attach a single handler to the ``pgstats`` logger.

    Unusable settings (an unknown level, a log file that cannot be opened)
    are replaced by stderr at INFO and the problem is logged.
    """
    logger = logging.getLogger("pgstats")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    try:
        level = _resolve_level(settings.log_level)
        handler = _build_handler(settings)
        problem = None
    except (ValueError, OSError) as exc:
        level = _resolve_level(DEFAULT_LEVEL)
        handler = logging.StreamHandler(sys.stderr)
        problem = exc

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)

    if problem is not None:
        logger.error("Caught a problem with log settings: %s", problem)
        logger.error("Setting log settings to defaults")
    return logger
