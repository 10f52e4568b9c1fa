"""Logging utilities for callsift."""
from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str | int = "INFO") -> None:
    if isinstance(level, str):
        level = level.upper()
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return  # already configured
    logging.basicConfig(level=level, format=LOG_FORMAT)


def truncate(message: object, limit: int = 150) -> str:
    """Shorten an error message for single-line log output."""
    text = str(message)
    return text if len(text) <= limit else text[:limit]
