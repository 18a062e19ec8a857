"""Logging setup for command-line use.

Library modules only create ``logging.getLogger(__name__)`` loggers and never
configure handlers; the CLI calls :func:`configure_logging` once at startup.
"""
from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "WARNING") -> None:
    """Attach a stderr handler to the package logger at ``level``."""
    package_logger = logging.getLogger("view_matrix_auth")
    package_logger.setLevel(level.upper())
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        package_logger.addHandler(handler)
