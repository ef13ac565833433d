"""
Browser session management for BrowserStack Automate and local Chrome.

Key pieces:
- Slug parsing: WINDOWS_10_CHROME90 -> OS and browser capabilities
- Capability assembly with fixed precedence and a per-slug cache
- Session providers: local chromedriver or the remote grid
- BrowserStack Local tunnel lifecycle
- Session status reporting through the REST API

Usage:
    from browserstack_grid.browser import select_session_provider, SessionIdentity, TestOutcome

    provider = select_session_provider(get_settings())
    driver = provider.acquire(SessionIdentity("Shop", "main", "Checkout @ test_pay"))
    ...
    provider.finish(driver, TestOutcome(passed=True))
    provider.close()
"""

from .capabilities import (
    CapabilityCache,
    SessionIdentity,
    assemble_capabilities,
    flatten_capabilities,
    local_chrome_options,
    options_for_capabilities,
)
from .providers import (
    LocalSessionProvider,
    ProviderState,
    RemoteSessionProvider,
    SessionProvider,
    select_session_provider,
)
from .slugs import ParsedSlug, detect_browser, detect_mobile_os, detect_os, is_mobile_slug, parse_slug
from .status import SessionStatusReporter, TestOutcome
from .tunnel import TunnelManager

__all__ = [
    "CapabilityCache",
    "SessionIdentity",
    "assemble_capabilities",
    "flatten_capabilities",
    "local_chrome_options",
    "options_for_capabilities",
    "LocalSessionProvider",
    "ProviderState",
    "RemoteSessionProvider",
    "SessionProvider",
    "select_session_provider",
    "ParsedSlug",
    "detect_browser",
    "detect_mobile_os",
    "detect_os",
    "is_mobile_slug",
    "parse_slug",
    "SessionStatusReporter",
    "TestOutcome",
    "TunnelManager",
]
