"""Shared logging utilities for the scoring model.

Usage example:
    from job_scoring_model.observability.logging import get_logger

    logger = get_logger("job_scoring_model.validation")
    logger.info("Scoring %s test jobs", job_count)
"""

from __future__ import annotations

import logging
import time

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
_ROOT_NAME = "job_scoring_model"
_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_default_level = logging.INFO


class UnknownLogLevelError(ValueError):
    """Raised when a log level name is not supported."""

    def __init__(self, level: str) -> None:
        super().__init__(f"Unknown log level {level!r}. Use one of: {', '.join(_LEVELS)}.")


def get_logger(name: str) -> logging.Logger:
    """Return a standard logger configured for UTC timestamps.

    Args:
        name: Logger name (use a stable module-qualified name).

    Returns:
        A logger with a single stream handler and a consistent UTC format.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)
        formatter.converter = time.gmtime
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(_default_level)
        logger.propagate = False
    return logger


def set_log_level(level: str) -> int:
    """Apply a named level to package loggers, including ones created later."""
    global _default_level
    resolved = _LEVELS.get(level.strip().lower())
    if resolved is None:
        raise UnknownLogLevelError(level)
    _default_level = resolved
    for name, candidate in logging.Logger.manager.loggerDict.items():
        if name.startswith(_ROOT_NAME) and isinstance(candidate, logging.Logger):
            if candidate.handlers:
                candidate.setLevel(resolved)
    return resolved
