"""
Logging setup shared by every loopstitch module.
"""

import logging
from typing import Optional, Union

ROOT_LOGGER_NAME = "loopstitch"

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"

_configured = False


def _configure_root() -> logging.Logger:
    """Attach a single stream handler to the package root logger."""
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not _configured:
        if not root.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(_LOG_FORMAT))
            root.addHandler(handler)
        root.setLevel(logging.WARNING)
        root.propagate = False
        _configured = True
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger under the loopstitch namespace.

    Args:
        name: Module name (usually ``__name__``). Names outside the
              namespace are nested beneath it.

    Returns:
        Configured logger instance.
    """
    root = _configure_root()
    if not name or name == ROOT_LOGGER_NAME:
        return root
    if not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def set_log_level(level: Union[int, str]):
    """
    Set verbosity for all loopstitch loggers.

    Args:
        level: Logging level, e.g. ``logging.DEBUG`` or ``"INFO"``.
    """
    if isinstance(level, str):
        level = level.upper()
    _configure_root().setLevel(level)
