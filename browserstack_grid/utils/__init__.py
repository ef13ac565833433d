"""Utility modules for the BrowserStack grid integration."""

from .logging import configure_logging, get_logger, LogContext, log_operation

__all__ = [
    "configure_logging",
    "get_logger",
    "LogContext",
    "log_operation",
]
