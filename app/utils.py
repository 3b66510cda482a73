"""
Shared helpers used across features.
"""
import logging
import os
import sys

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root = logging.getLogger("app")
    root.addHandler(handler)
    root.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the ``app`` hierarchy.

    Usage:
        log = get_logger(__name__)
        log.info("Agency %s created", agency.id)
    """
    _configure_root()
    if not name.startswith("app"):
        name = f"app.{name}"
    return logging.getLogger(name)
