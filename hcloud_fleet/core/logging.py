"""Logging setup for the CLI."""

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def get_log_level(provided_level: Optional[str] = None) -> str:
    """Determine log level.

    Priority: LOG_LEVEL environment variable, then the provided level,
    then WARNING.
    """
    env_level = os.environ.get("LOG_LEVEL")
    if env_level:
        return env_level.upper()
    if provided_level:
        return provided_level.upper()
    return "WARNING"


def setup_logging(level: Optional[str] = None) -> None:
    """Install a rich handler on the package logger, writing to stderr."""
    logger = logging.getLogger("hcloud_fleet")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.setLevel(get_log_level(level))
    logger.propagate = False
