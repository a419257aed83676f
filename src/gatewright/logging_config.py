"""Logging configuration — central setup for the CLI entrypoint.

Every module does ``logger = logging.getLogger(__name__)`` and inherits this.

Levels are resolved in precedence order:
    --verbose flag  >  GATEWRIGHT_LOG_LEVEL env var  >  WARNING (default)
"""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def resolve_level(verbose: bool = False) -> str:
    """Pick the effective log level name."""
    if verbose:
        return "DEBUG"
    env_level = os.environ.get("GATEWRIGHT_LOG_LEVEL", "").strip().upper()
    if env_level in _VALID_LEVELS:
        return env_level
    return "WARNING"


def setup_logging(level: str = "WARNING") -> None:
    """Configure the ``gatewright`` logger hierarchy.

    Logs go to stderr through a RichHandler so that stdout stays clean for
    ``--format json`` and ``--format jsonl`` output.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=numeric_level <= logging.DEBUG,
        show_time=numeric_level <= logging.INFO,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger("gatewright")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(numeric_level)
    logger.propagate = False
