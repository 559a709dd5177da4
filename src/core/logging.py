"""
Logging for the report engine.

All engine modules log under the ``src`` logger; a single stdout handler is
attached there once and module loggers propagate to it.  The level comes from
``settings.log_level``.
"""
from __future__ import annotations

import logging
import sys

from src.core.config import get_settings

_ROOT = "src"
_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(_ROOT)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
        root.propagate = False
    root.setLevel(getattr(logging, get_settings().log_level.upper(), logging.INFO))
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger for *name*; modules outside ``src`` are nested under it."""
    root = _configure_root()
    if name == _ROOT or name.startswith(_ROOT + "."):
        return logging.getLogger(name)
    return root.getChild(name)
