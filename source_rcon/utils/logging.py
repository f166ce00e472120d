"""Log setup shared by the RCON client library and its command-line entry point."""

from typing import Optional, TextIO
import logging
import sys

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    """
    Send log records to stderr so that command responses printed to
    stdout can be piped untouched.

    Args:
        level: Level name, case-insensitive (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Where to write records; defaults to sys.stderr

    Raises:
        ValueError: If the level name is unknown
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(stream or sys.stderr)],
    )


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module, e.g. get_logger(__name__)."""
    return logging.getLogger(name)
