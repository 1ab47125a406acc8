"""modlock.logs — Logging bootstrap for the CLI."""

from __future__ import annotations

import logging
import sys

_FORMAT = "%(levelname)s %(name)s: %(message)s"


class _ModlockHandler(logging.StreamHandler):
    """Marker type so setup_logging can replace its own handler."""
    pass


def setup_logging(level: str | int = "WARNING") -> logging.Logger:
    """Attach a stderr handler to the `modlock` logger.

    Calling it again replaces the previous handler instead of adding
    another one.
    """
    logger = logging.getLogger("modlock")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)
    logger.setLevel(level)

    for h in list(logger.handlers):
        if isinstance(h, _ModlockHandler):
            logger.removeHandler(h)

    handler = _ModlockHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    return logger
