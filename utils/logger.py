"""
utils/logger.py
---------------
Logging for the storage core.
Every module takes its logger from `get_logger(__name__)`. Repositories log
one INFO line per committed mutation (ids and changed field names, never
attachment payloads) and a WARNING for each write rejected on a missing
parent; rolled-back cascades are logged at ERROR.
"""

import logging
import sys

from config import LOG_LEVEL

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_initialized = False


def _init_logging() -> None:
    """
    Install the stdout handler on the root logger, once per process.

    The level comes from LOG_LEVEL (DEBUG, INFO, WARNING, ...); an
    unrecognized name falls back to INFO rather than failing at import.
    """
    global _initialized
    if _initialized:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
    root = logging.getLogger()
    root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    root.addHandler(handler)
    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        A configured logging.Logger.
    """
    _init_logging()
    return logging.getLogger(name)
