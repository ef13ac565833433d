"""
pytest plugin running browser tests locally or on BrowserStack.

Enable it from a conftest.py:

    pytest_plugins = ["browserstack_grid.plugin"]

and request the `browser` fixture:

    def test_home_page(browser):
        browser.get("http://localhost:8000")
        assert "Home" in browser.title

With BROWSERSTACK_BROWSER (or --browserstack-browser) set to a slug such as
WINDOWS_10_CHROME90 the driver runs on BrowserStack and the test outcome is
reported to the dashboard; otherwise it is headless Chrome on localhost:9515.
"""

from typing import Optional

import pytest
import structlog

from browserstack_grid.browser.capabilities import SessionIdentity
from browserstack_grid.browser.providers import SessionProvider, select_session_provider
from browserstack_grid.browser.status import TestOutcome
from browserstack_grid.browser.tunnel import TunnelManager
from browserstack_grid.config import Settings, get_settings
from browserstack_grid.utils.logging import LogContext

logger = structlog.get_logger(__name__)

_reports_key = pytest.StashKey[dict]()


def pytest_addoption(parser):
    group = parser.getgroup("browserstack", "BrowserStack grid")
    group.addoption(
        "--browserstack-browser",
        dest="browserstack_browser",
        default=None,
        metavar="SLUG",
        help="Browser slug to run on BrowserStack, e.g. WINDOWS_10_CHROME90 (overrides BROWSERSTACK_BROWSER)",
    )
    group.addoption(
        "--browserstack-separate-sessions",
        dest="browserstack_separate_sessions",
        action="store_true",
        default=None,
        help="Close the remote session after every test",
    )
    group.addoption(
        "--browserstack-shared-session",
        dest="browserstack_separate_sessions",
        action="store_false",
        default=None,
        help="Reuse one remote session for the whole run",
    )


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Keep each phase report on the item for the browser fixture teardown."""
    outcome = yield
    report = outcome.get_result()
    item.stash.setdefault(_reports_key, {})[report.when] = report


def _failure_reason(report) -> Optional[str]:
    if report.skipped and isinstance(report.longrepr, tuple):
        return f"Skipped: {report.longrepr[2]}"

    crash = getattr(report.longrepr, "reprcrash", None)
    if crash is not None:
        return crash.message

    text = report.longreprtext.strip()
    return text.splitlines()[-1] if text else None


def outcome_for(item) -> TestOutcome:
    """Outcome of a test from its setup and call reports.

    Anything other than a passed call phase counts as failed.
    """
    reports = item.stash.get(_reports_key, {})

    for when in ("setup", "call"):
        report = reports.get(when)
        if report is not None and not report.passed:
            return TestOutcome(passed=False, reason=_failure_reason(report))

    if "call" not in reports:
        return TestOutcome(passed=False, reason="Test did not run")

    return TestOutcome(passed=True)


def session_name_for(node) -> str:
    """Dashboard session name: `<Class or module> @ <test>`."""
    cls = getattr(node, "cls", None)
    if cls is not None:
        owner = cls.__name__
    else:
        module = getattr(node, "module", None)
        owner = module.__name__.rsplit(".", 1)[-1] if module is not None else "Unknown"
    return f"{owner} @ {node.name}"


@pytest.fixture(scope="session")
def browserstack_settings(pytestconfig) -> Settings:
    """Settings from the environment with command line overrides applied."""
    overrides = {}

    slug = pytestconfig.getoption("browserstack_browser")
    if slug:
        overrides["browser"] = slug

    separate_sessions = pytestconfig.getoption("browserstack_separate_sessions")
    if separate_sessions is not None:
        overrides["separate_sessions"] = separate_sessions

    return get_settings(**overrides)


@pytest.fixture(scope="session")
def browserstack_tunnel(browserstack_settings):
    """The run's BrowserStack Local tunnel, stopped once at suite end.

    None when running locally or with the tunnel disabled.
    """
    settings = browserstack_settings
    if not (settings.runs_remotely and settings.local_tunnel):
        yield None
        return

    _, access_key = settings.require_credentials()
    tunnel = TunnelManager(access_key, settings.arguments)
    try:
        yield tunnel
    finally:
        tunnel.disconnect()


@pytest.fixture(scope="session")
def session_provider(browserstack_settings, browserstack_tunnel) -> SessionProvider:
    """Local or remote session provider, closed once at suite end."""
    provider = select_session_provider(browserstack_settings, tunnel=browserstack_tunnel)
    logger.info("Selected session provider", state=provider.state.value)
    yield provider
    provider.close()


@pytest.fixture
def session_identity(request, browserstack_settings) -> SessionIdentity:
    """Project, build and session names for the requesting test."""
    return SessionIdentity(
        project=browserstack_settings.project_name,
        build=browserstack_settings.build_name(),
        name=session_name_for(request.node),
    )


@pytest.fixture
def browser(request, session_provider, session_identity):
    """WebDriver for the test; its outcome is reported when the test ends."""
    with LogContext(test=request.node.nodeid):
        driver = session_provider.acquire(session_identity)

    yield driver

    with LogContext(test=request.node.nodeid):
        session_provider.finish(driver, outcome_for(request.node))
