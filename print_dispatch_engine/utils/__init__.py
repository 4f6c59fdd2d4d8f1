"""
Utilities package for the Print Dispatch Engine

Contains logging helpers shared by every service.
"""

from .logger import (
    StructuredFormatter,
    DispatchContextFilter,
    setup_logger,
    get_logger,
    set_log_context,
    clear_log_context,
    LoggerContext
)

__all__ = [
    "StructuredFormatter",
    "DispatchContextFilter",
    "setup_logger",
    "get_logger",
    "set_log_context",
    "clear_log_context",
    "LoggerContext"
]
