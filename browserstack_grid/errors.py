"""Exceptions raised by the BrowserStack grid integration."""

from typing import Optional


class BrowserStackError(Exception):
    """Base exception for BrowserStack grid errors."""
    pass


class ConfigurationError(BrowserStackError):
    """Settings are missing or invalid. Raised before any network or process activity."""
    pass


class UnrecognizedSlugError(ConfigurationError):
    """A browser slug could not be parsed into capabilities."""

    def __init__(self, slug: Optional[str], reason: str):
        self.slug = slug
        self.reason = reason
        super().__init__(f"Unrecognized browser slug {slug!r}: {reason}")


class TransportError(BrowserStackError):
    """A call to the remote grid or REST API failed. Never retried."""
    pass


class SessionCreationError(TransportError):
    """A WebDriver session could not be created."""
    pass


class StatusReportError(TransportError):
    """The session status could not be reported to BrowserStack."""
    pass


class TunnelError(BrowserStackError):
    """The BrowserStack Local tunnel failed to start or stop."""
    pass
