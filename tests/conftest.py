"""Shared fixtures for BrowserStack grid tests."""

import os
from unittest.mock import MagicMock

import pytest

pytest_plugins = ["pytester"]


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring real BrowserStack credentials"
    )


# Variables read by Settings outside the BROWSERSTACK_ prefix
_UNPREFIXED_ENV = ("APP_NAME", "APP_ENV", "GITHUB_SHA", "GITHUB_REF")


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Remove every setting from the environment and hide any .env file."""
    for key in list(os.environ):
        if key.startswith("BROWSERSTACK_"):
            monkeypatch.delenv(key, raising=False)
    for key in _UNPREFIXED_ENV:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


@pytest.fixture
def mock_env_vars(clean_env):
    """Set up BrowserStack credentials for a remote run."""
    clean_env.setenv("BROWSERSTACK_USERNAME", "test-user")
    clean_env.setenv("BROWSERSTACK_ACCESS_KEY", "test-access-key")
    return clean_env


class FakeLocal:
    """Stands in for browserstack.local.Local."""

    def __init__(self, fail_start: bool = False, fail_stop: bool = False):
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.running = False
        self.start_calls: list[dict] = []
        self.stop_calls = 0

    def start(self, **kwargs):
        self.start_calls.append(kwargs)
        if self.fail_start:
            raise RuntimeError("binary download failed")
        self.running = True

    def isRunning(self):
        return self.running

    def stop(self):
        self.stop_calls += 1
        if self.fail_stop:
            raise RuntimeError("process already gone")
        self.running = False


@pytest.fixture
def fake_local_factory():
    """Factory producing FakeLocal handles.

    Created handles are kept on `.created`; set `.fail_start` or `.fail_stop`
    to make the next handles fail.
    """
    created: list[FakeLocal] = []

    def factory():
        local = FakeLocal(fail_start=factory.fail_start, fail_stop=factory.fail_stop)
        created.append(local)
        return local

    factory.created = created
    factory.fail_start = False
    factory.fail_stop = False
    return factory


@pytest.fixture
def fake_driver():
    """A WebDriver double with a session id."""
    driver = MagicMock()
    driver.session_id = "abc123session"
    return driver


@pytest.fixture
def driver_factory(fake_driver):
    """webdriver.Remote double returning fake_driver."""
    return MagicMock(return_value=fake_driver)


@pytest.fixture
def mock_reporter():
    """SessionStatusReporter double."""
    from browserstack_grid.browser.status import SessionStatusReporter

    return MagicMock(spec=SessionStatusReporter)
