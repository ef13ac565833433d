"""Run browser test suites on BrowserStack Automate or a local chromedriver."""

from .config import Settings, get_settings
from .errors import (
    BrowserStackError,
    ConfigurationError,
    SessionCreationError,
    StatusReportError,
    TransportError,
    TunnelError,
    UnrecognizedSlugError,
)

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "get_settings",
    "BrowserStackError",
    "ConfigurationError",
    "SessionCreationError",
    "StatusReportError",
    "TransportError",
    "TunnelError",
    "UnrecognizedSlugError",
]
