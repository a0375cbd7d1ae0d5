"""Console logging for the ``hookflow`` logger tree."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from .hooks.logger import LOG_LEVELS


def configure_logging(level: str = "info") -> logging.Logger:
    """
    Attach a stderr RichHandler to the ``hookflow`` logger.

    Calling it again only updates the level.

    Args:
        level: One of "debug", "info", "warn", "error"
    """
    root = logging.getLogger("hookflow")
    root.setLevel(LOG_LEVELS.get(level, logging.INFO))

    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)

    return root
