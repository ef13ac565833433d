"""
Session providers: where a test's WebDriver session comes from.

Architecture:
- LocalSessionProvider: headless Chrome through a chromedriver on localhost
- RemoteSessionProvider: BrowserStack Automate, reached through the Local tunnel

select_session_provider() picks one with a single check: a configured browser
slug means remote, no slug means local.

Remote state:
    REMOTE_DISCONNECTED --connect (once per run)--> REMOTE_CONNECTED
    REMOTE_CONNECTED --tunnel teardown--> REMOTE_DISCONNECTED
"""

import shutil
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Optional
from urllib.parse import urlparse

import structlog
from selenium import webdriver
from selenium.webdriver.chrome.service import Service as ChromeService
from selenium.webdriver.remote.webdriver import WebDriver

from browserstack_grid.browser.capabilities import (
    CapabilityCache,
    SessionIdentity,
    local_chrome_options,
    options_for_capabilities,
)
from browserstack_grid.browser.status import SessionStatusReporter, TestOutcome
from browserstack_grid.browser.tunnel import TunnelManager
from browserstack_grid.config import Settings
from browserstack_grid.errors import ConfigurationError, SessionCreationError

logger = structlog.get_logger(__name__)

DriverFactory = Callable[..., WebDriver]


class ProviderState(str, Enum):
    """Where sessions are created and whether the remote side is reachable."""
    LOCAL = "local"
    REMOTE_DISCONNECTED = "remote_disconnected"
    REMOTE_CONNECTED = "remote_connected"


class SessionProvider(ABC):
    """
    Creates and releases WebDriver sessions for tests.

    A session is reused by the next test unless separate sessions are
    configured, in which case finish() quits it right after the test.
    """

    def __init__(self, settings: Settings, driver_factory: Optional[DriverFactory] = None):
        self.settings = settings
        self._driver_factory = driver_factory or webdriver.Remote
        self._driver: Optional[WebDriver] = None

    @property
    @abstractmethod
    def state(self) -> ProviderState:
        """Current provider state."""

    @property
    def is_remote(self) -> bool:
        return self.state is not ProviderState.LOCAL

    @property
    def active_driver(self) -> Optional[WebDriver]:
        return self._driver

    @abstractmethod
    def _create_driver(self, identity: SessionIdentity) -> WebDriver:
        """Open a new session."""

    def _report(self, driver: WebDriver, outcome: TestOutcome) -> None:
        """Publish a test outcome for the session. Local sessions publish nothing."""

    def _shutdown(self) -> None:
        """Release provider resources after the last session."""

    def acquire(self, identity: SessionIdentity) -> WebDriver:
        """Return the open session or create one for the given identity."""
        if self._driver is None:
            self._driver = self._create_driver(identity)
        return self._driver

    def finish(self, driver: WebDriver, outcome: TestOutcome) -> None:
        """Handle the end of a test that used the driver."""
        try:
            self._report(driver, outcome)
        finally:
            if self.settings.separate_sessions:
                self._quit()

    def close(self) -> None:
        """Quit any open session and release resources. Called once at suite end."""
        try:
            self._quit()
        finally:
            self._shutdown()

    def _quit(self) -> None:
        if self._driver is None:
            return

        driver, self._driver = self._driver, None
        logger.debug("Closing WebDriver session", session_id=driver.session_id)
        driver.quit()


class LocalSessionProvider(SessionProvider):
    """Headless Chrome through a local chromedriver."""

    def __init__(
        self,
        settings: Settings,
        driver_factory: Optional[DriverFactory] = None,
        service_factory: Callable[..., ChromeService] = ChromeService,
    ):
        super().__init__(settings, driver_factory)
        self._service_factory = service_factory
        self._service: Optional[ChromeService] = None

    @property
    def state(self) -> ProviderState:
        return ProviderState.LOCAL

    def _ensure_chromedriver(self) -> None:
        """Start chromedriver on the configured port when asked to."""
        if not self.settings.start_chromedriver or self._service is not None:
            return

        executable = self.settings.chromedriver_path or shutil.which("chromedriver")
        if not executable:
            raise ConfigurationError(
                "chromedriver not found. Install it or set BROWSERSTACK_CHROMEDRIVER_PATH."
            )

        port = urlparse(self.settings.local_driver_url).port or 9515
        service = self._service_factory(executable_path=executable, port=port)
        service.start()
        self._service = service
        logger.info("Started chromedriver", port=port)

    def _create_driver(self, identity: SessionIdentity) -> WebDriver:
        self._ensure_chromedriver()

        try:
            driver = self._driver_factory(
                command_executor=self.settings.local_driver_url,
                options=local_chrome_options(),
            )
        except Exception as e:
            raise SessionCreationError(
                f"Failed to create local session at {self.settings.local_driver_url}: {e}"
            ) from e

        logger.info("Created local session", test=identity.name, session_id=driver.session_id)
        return driver

    def _shutdown(self) -> None:
        if self._service is not None:
            service, self._service = self._service, None
            service.stop()
            logger.info("Stopped chromedriver")


class RemoteSessionProvider(SessionProvider):
    """Sessions on the BrowserStack Automate grid."""

    def __init__(
        self,
        settings: Settings,
        tunnel: Optional[TunnelManager],
        reporter: SessionStatusReporter,
        driver_factory: Optional[DriverFactory] = None,
        owns_tunnel: bool = False,
        owns_reporter: bool = False,
    ):
        super().__init__(settings, driver_factory)
        self.slug = settings.browser
        self.tunnel = tunnel
        self.reporter = reporter
        self._owns_tunnel = owns_tunnel
        self._owns_reporter = owns_reporter
        self._connected = False
        self.capabilities = CapabilityCache(
            settings.global_capabilities(),
            firefox_safe_json=settings.firefox_safe_json,
        )

        # Fail on bad configuration before anything touches the network
        settings.require_credentials()
        self.capabilities.parsed(self.slug)

    @property
    def state(self) -> ProviderState:
        if self._connected and (self.tunnel is None or self.tunnel.is_connected):
            return ProviderState.REMOTE_CONNECTED
        return ProviderState.REMOTE_DISCONNECTED

    def connect(self) -> None:
        """Bring the tunnel up if one is used. Idempotent."""
        if self.tunnel is not None:
            self.tunnel.connect()
        self._connected = True

    def capabilities_for(self, identity: SessionIdentity) -> dict[str, Any]:
        return self.capabilities.capabilities_for(self.slug, identity)

    def _create_driver(self, identity: SessionIdentity) -> WebDriver:
        self.connect()
        capabilities = self.capabilities_for(identity)

        try:
            driver = self._driver_factory(
                command_executor=self.settings.hub_endpoint(),
                options=options_for_capabilities(capabilities),
            )
        except Exception as e:
            raise SessionCreationError(
                f"Failed to create BrowserStack session on {self.settings.hub_host}: {e}"
            ) from e

        logger.info(
            "Created BrowserStack session",
            slug=self.slug,
            session_id=driver.session_id,
            build=identity.build,
            test=identity.name,
        )
        return driver

    def _report(self, driver: WebDriver, outcome: TestOutcome) -> None:
        self.reporter.report(driver.session_id, outcome)

    def _shutdown(self) -> None:
        try:
            if self._owns_tunnel and self.tunnel is not None:
                self.tunnel.disconnect()
        finally:
            if self._owns_reporter:
                self.reporter.close()


def select_session_provider(
    settings: Settings,
    *,
    tunnel: Optional[TunnelManager] = None,
    reporter: Optional[SessionStatusReporter] = None,
    driver_factory: Optional[DriverFactory] = None,
) -> SessionProvider:
    """
    Pick the provider for the configured browser slug.

    Args:
        settings: Loaded settings
        tunnel: Tunnel manager to use; one is created when the tunnel is enabled and none is given
        reporter: Status reporter to use; one is created when none is given
        driver_factory: Creates WebDriver sessions (defaults to webdriver.Remote)

    Raises:
        ConfigurationError: Missing credentials or an unrecognized slug
    """
    if not settings.runs_remotely:
        logger.debug("No browser slug configured, using local chromedriver")
        return LocalSessionProvider(settings, driver_factory=driver_factory)

    username, access_key = settings.require_credentials()

    owns_tunnel = tunnel is None and settings.local_tunnel
    if owns_tunnel:
        tunnel = TunnelManager(access_key, settings.arguments)

    owns_reporter = reporter is None
    if owns_reporter:
        reporter = SessionStatusReporter(username, access_key, api_url=settings.api_url)

    try:
        return RemoteSessionProvider(
            settings,
            tunnel=tunnel if settings.local_tunnel else None,
            reporter=reporter,
            driver_factory=driver_factory,
            owns_tunnel=owns_tunnel,
            owns_reporter=owns_reporter,
        )
    except ConfigurationError:
        if owns_reporter:
            reporter.close()
        raise
