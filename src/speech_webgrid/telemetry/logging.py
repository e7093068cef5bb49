"""Logging setup for interactive runs."""

from __future__ import annotations

import logging

from rich.logging import RichHandler


def configure_logging(level: str = "WARNING") -> None:
    """Route ``speech_webgrid`` loggers through a rich console handler."""
    logger = logging.getLogger("speech_webgrid")
    logger.setLevel(level.upper())
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        logger.addHandler(RichHandler(rich_tracebacks=True, show_path=False))
    logger.propagate = False
