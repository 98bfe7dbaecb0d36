"""
log_utils.py - Logging setup with icons for craftport

Message-only log lines prefixed by a level icon, plus a fence helper that
brackets each document in the run output.
"""

import logging
from datetime import datetime
from typing import Optional

from craftport.icons import CRITICAL, DEBUG, DONE, ERROR, WARNING


LOGGER_NAME = "craftport"

# Message-only; no per-line timestamps
LOG_FORMAT = "%(message)s"

LEVEL_ICONS = {
    logging.DEBUG: DEBUG,
    logging.INFO: DONE,
    logging.WARNING: WARNING,
    logging.ERROR: ERROR,
    logging.CRITICAL: CRITICAL,
}


class IconLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        icon = LEVEL_ICONS.get(record.levelno, DONE)
        base = super().format(record)
        return f"{icon} {base}"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the craftport logger or one of its children."""
    if not name:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def setup_logging(verbosity: int) -> logging.Logger:
    level = logging.INFO
    if verbosity >= 1:
        level = logging.DEBUG

    handler = logging.StreamHandler()
    formatter = IconLogFormatter(LOG_FORMAT)
    handler.setFormatter(formatter)

    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False
    return logger


# -----------------------------------------------------------------------------
# Fence helper for visual phase markers
# -----------------------------------------------------------------------------

DOT_LINE = "." * 80


def fence(label: str, logger: Optional[logging.Logger] = None) -> None:
    """
    Log a visual fence with a timestamped label.
    Used at document start to bracket logs.
    """
    logger = logger or get_logger()
    ts = datetime.now().strftime("%H:%M:%S")
    logger.info(DOT_LINE)
    logger.info(f"[{ts}] {label}")
