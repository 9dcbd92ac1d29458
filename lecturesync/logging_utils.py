"""Centralized logging configuration for the lecturesync CLI."""

from __future__ import annotations

import logging
from logging import Logger
from typing import Iterable, Optional

from rich.console import Console
from rich.logging import RichHandler


DEFAULT_LOG_FORMAT = "%(message)s"


def configure_logging(
    level: int = logging.INFO,
    *,
    handlers: Optional[Iterable[logging.Handler]] = None,
    console: Optional[Console] = None,
) -> Logger:
    """Configure the root logger; progress goes to stderr through rich."""

    logger = logging.getLogger()
    logger.setLevel(level)

    if handlers is None:
        # repeated calls (tests, re-entry through main()) keep a single handler
        if any(isinstance(h, RichHandler) for h in logger.handlers):
            return logger
        rich_handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            markup=False,
        )
        rich_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        logger.addHandler(rich_handler)
    else:
        for handler in handlers:
            logger.addHandler(handler)

    return logger


__all__ = ["configure_logging", "DEFAULT_LOG_FORMAT"]
