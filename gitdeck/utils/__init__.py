"""Utility functions for gitdeck."""

from .logging import LOG_DIR, LogCapture, setup_logging

__all__ = [
    "LOG_DIR",
    "LogCapture",
    "setup_logging",
]
