"""Logging configuration for command-line entry points."""

import logging
import sys


def setup_logging(level: str | int = logging.WARNING) -> None:
    """Configure the root logger with a single stderr handler.

    Args:
        level: Logging level name ("DEBUG", "INFO", ...) or numeric level
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(name)s] %(levelname)s: %(message)s"))

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,  # Override any existing configuration
    )
