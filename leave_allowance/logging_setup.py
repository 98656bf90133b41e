"""
Logging configuration for command-line use.

Library modules only create module loggers; handlers are installed here.
"""

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOGGER_NAME = "leave_allowance"

_handler: Optional[logging.Handler] = None


def configure_logging(level: int = logging.WARNING) -> None:
    """Install a stderr handler on the package logger.

    Safe to call repeatedly; the level is updated and no handler is added twice.
    """
    global _handler
    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.setLevel(level)
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(_handler)


def reset_logging() -> None:
    """Remove the installed handler and restore the default level."""
    global _handler
    package_logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        package_logger.removeHandler(_handler)
        _handler = None
    package_logger.setLevel(logging.NOTSET)
