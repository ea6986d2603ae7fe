"""Console logging setup for the provset CLI and embedding applications."""

from __future__ import annotations

import logging
import threading

__all__ = ["setup_logging", "LOG_FORMAT"]

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

_logging_lock = threading.Lock()


def setup_logging(level: str | int = "INFO") -> None:
    """Attach one console handler to the ``provset`` logger.

    Safe to call repeatedly: an existing handler is reused and only the
    level is updated.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    with _logging_lock:
        logger = logging.getLogger("provset")
        logger.setLevel(level)
        for handler in logger.handlers:
            if getattr(handler, "_provset_console", False):
                handler.setLevel(level)
                return

        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.setLevel(level)
        handler._provset_console = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
