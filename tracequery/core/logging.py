"""
Logging for the query compiler service.

Every module logs through a child of the ``tracequery`` logger, so a single
stdout handler on that logger serves the whole package.  Compiled SQL is only
emitted at DEBUG; bound values are never logged.
"""
from __future__ import annotations

import logging
import sys

from tracequery.core.config import get_settings

_ROOT = "tracequery"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(_ROOT)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        ))
        root.addHandler(handler)
        root.propagate = False
    root.setLevel(getattr(logging, get_settings().log_level.upper(), logging.INFO))
    return root


def get_logger(name: str) -> logging.Logger:
    """Return the logger for *name*, a module inside the ``tracequery`` package."""
    root = _configure_root()
    if name == _ROOT or name.startswith(_ROOT + "."):
        return logging.getLogger(name)
    return root.getChild(name)
