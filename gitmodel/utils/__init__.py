"""Utility functions for gitmodel."""

from .logging import (
    LogCapture,
    disable_logging,
    get_logger,
    setup_logging,
)

__all__ = [
    "LogCapture",
    "disable_logging",
    "get_logger",
    "setup_logging",
]
