"""
Simple logging helper shared by the solver, the sinks and the CLI.
"""

from __future__ import annotations

import logging
from typing import Optional, TextIO

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s: %(message)s"


def get_logger(name: str, level: str = "INFO", stream: Optional[TextIO] = None) -> logging.Logger:
    """Create a logger with uniform format.

    Params:
        name: logger name, usually __name__ of the caller module.
        level: logging level string (e.g., 'DEBUG', 'INFO').
        stream: destination for the handler; stderr when omitted.

    Returns:
        Configured logging.Logger instance.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger


def set_level(logger: logging.Logger, level: str) -> None:
    """Change the level of a logger created by get_logger."""
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
