"""Console logging for the squad ledger.

The level defaults to INFO and can be overridden with ``FPLSQUAD_LOG_LEVEL``.
"""

import logging
import os
import sys

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_QUIET = ("urllib3", "werkzeug")


def _level_from_env(default: int) -> int:
    name = os.environ.get("FPLSQUAD_LOG_LEVEL", "").upper()
    return getattr(logging, name, default) if name else default


def setup_logging(level: int = logging.INFO) -> None:
    """Attach a stdout handler to the root logger once per process."""
    root = logging.getLogger()
    if root.handlers:
        return

    level = _level_from_env(level)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
