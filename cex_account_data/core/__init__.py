"""
Core module for the account data synchronizer.

Provides logging, the exception hierarchy, data models and utilities.
"""

from .logger import configure_logging, get_logger, setup_logger

__all__ = [
    "setup_logger",
    "get_logger",
    "configure_logging",
]
