"""Core rowkeeper utilities.

This module exports core utilities for use throughout the library.
"""

from rowkeeper.core.config import Settings, get_settings
from rowkeeper.core.logging import (
    LoggingContext,
    clear_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LoggingContext",
    "clear_context",
]
