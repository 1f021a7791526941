"""Logging configuration for ETF Analyzer."""

import logging
import sys


def setup_logger(name: str = "etf_analyzer", level: str | None = None) -> logging.Logger:
    """Create and configure a logger.

    Every logger lives under the ``etf_analyzer`` namespace so that
    ``set_level`` can adjust the whole application at once.
    """
    if not name.startswith("etf_analyzer"):
        name = f"etf_analyzer.{name}"
    logger = logging.getLogger(name)
    root = logging.getLogger("etf_analyzer")
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        fmt = logging.Formatter(
            "%(asctime)s | %(name)-20s | %(levelname)-7s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(fmt)
        root.addHandler(handler)
        root.setLevel(logging.INFO)
    if level:
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger


def set_level(level: str) -> None:
    """Set the level of the application's root logger."""
    logging.getLogger("etf_analyzer").setLevel(getattr(logging, level.upper(), logging.INFO))
