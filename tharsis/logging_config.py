"""
Logging setup for the server and CLI.
"""

from __future__ import annotations
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"

# Traces save and undo activity for games with undo enabled
UNDO_LOGGER = "tharsis.undo"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT, datefmt=DATE_FORMAT)
    root.setLevel(level.upper())


def undo_logger() -> logging.Logger:
    return logging.getLogger(UNDO_LOGGER)
