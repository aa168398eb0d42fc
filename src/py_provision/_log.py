"""Handler setup for the command line; the library itself only emits records."""

from __future__ import annotations

import logging
import sys

LEVELS = {
    0: logging.CRITICAL,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
    5: logging.NOTSET,
}

MAX_LEVEL = max(LEVELS.keys())
LOGGER = logging.getLogger()


def setup_report(verbosity: int) -> int:
    _clean_handlers(LOGGER)
    verbosity = max(0, min(verbosity, MAX_LEVEL))
    level = LEVELS[verbosity]
    msg_format = "%(message)s"
    if level <= logging.DEBUG:
        msg_format = f"%(relativeCreated)d {msg_format} [%(levelname)s %(module)s:%(lineno)d]"

    formatter = logging.Formatter(msg_format)
    stream_handler = logging.StreamHandler(stream=sys.stderr)
    stream_handler.setLevel(level)
    LOGGER.setLevel(logging.NOTSET)
    stream_handler.setFormatter(formatter)
    LOGGER.addHandler(stream_handler)
    LOGGER.debug("setup logging to %s", logging.getLevelName(level))
    return verbosity


def _clean_handlers(log: logging.Logger) -> None:
    for log_handler in list(log.handlers):
        log.removeHandler(log_handler)


__all__ = [
    "LEVELS",
    "MAX_LEVEL",
    "setup_report",
]
