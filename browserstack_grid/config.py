"""Configuration management for the BrowserStack grid integration."""

from typing import Any, Optional
from urllib.parse import quote

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from browserstack_grid.errors import ConfigurationError


DEFAULT_HUB_HOST = "hub-cloud.browserstack.com"
DEFAULT_API_URL = "https://api.browserstack.com"
DEFAULT_LOCAL_DRIVER_URL = "http://localhost:9515"


class Settings(BaseSettings):
    """Settings loaded from BROWSERSTACK_* environment variables and .env."""

    model_config = SettingsConfigDict(
        env_prefix="BROWSERSTACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Credentials
    # https://www.browserstack.com/accounts/settings
    username: Optional[str] = Field(None, description="BrowserStack username")
    access_key: Optional[SecretStr] = Field(None, description="BrowserStack access key")

    # Browser slug, e.g. WINDOWS_10_CHROME90 or IOS_IPHONE_12. Unset runs locally.
    browser: Optional[str] = Field(None, description="Browser slug to run on BrowserStack")

    # Session
    separate_sessions: bool = Field(True, description="Close the remote session after every test")

    # Capabilities
    # https://www.browserstack.com/automate/capabilities
    accept_ssl: bool = Field(True, description="acceptSslCerts capability")
    local_tunnel: bool = Field(True, description="Route the grid through a BrowserStack Local tunnel")
    console: str = Field("verbose", description="browserstack.console capability")
    timezone: Optional[str] = Field(None, description="browserstack.timezone capability")
    resolution: str = Field("1920x1080", description="Desktop screen resolution")
    capabilities: dict[str, Any] = Field(
        default_factory=dict,
        description="Nested capability overrides, flattened with dots",
    )
    firefox_safe_json: bool = Field(
        True,
        description="Disable the Firefox JSON viewer and reader mode parsing",
    )

    # Tunnel process arguments, e.g. {"forcelocal": "true", "localIdentifier": "ci"}
    arguments: dict[str, Any] = Field(default_factory=dict, description="BrowserStack Local arguments")

    # Endpoints
    hub_host: str = Field(DEFAULT_HUB_HOST, description="Remote grid host")
    api_url: str = Field(DEFAULT_API_URL, description="BrowserStack REST API base URL")
    local_driver_url: str = Field(DEFAULT_LOCAL_DRIVER_URL, description="Local chromedriver URL")
    start_chromedriver: bool = Field(False, description="Start chromedriver for local runs")
    chromedriver_path: Optional[str] = Field(None, description="chromedriver executable, looked up on PATH when unset")

    # Dashboard naming
    project_name: str = Field(
        "Browser Tests",
        validation_alias=AliasChoices("BROWSERSTACK_PROJECT", "APP_NAME", "project_name"),
        description="Project shown in the BrowserStack dashboard",
    )
    app_env: str = Field(
        "local",
        validation_alias=AliasChoices("APP_ENV", "app_env"),
        description="Environment label used as build name outside CI",
    )
    github_sha: Optional[str] = Field(None, validation_alias=AliasChoices("GITHUB_SHA", "github_sha"))
    github_ref: Optional[str] = Field(None, validation_alias=AliasChoices("GITHUB_REF", "github_ref"))

    @property
    def runs_remotely(self) -> bool:
        """Whether tests should run on BrowserStack."""
        return bool(self.browser)

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and self.access_key is not None and bool(
            self.access_key.get_secret_value()
        )

    def require_credentials(self) -> tuple[str, str]:
        """Return (username, access key) or raise ConfigurationError."""
        if not self.has_credentials:
            raise ConfigurationError(
                "BrowserStack credentials not configured. "
                "Set BROWSERSTACK_USERNAME and BROWSERSTACK_ACCESS_KEY env vars."
            )
        return self.username, self.access_key.get_secret_value()

    def global_capabilities(self) -> dict[str, Any]:
        """Capabilities shared by every remote session, overrides applied last."""
        from browserstack_grid.browser.capabilities import flatten_capabilities

        base = {
            "acceptSslCerts": self.accept_ssl,
            "browserstack.local": self.local_tunnel,
            "browserstack.console": self.console,
            "browserstack.timezone": self.timezone,
            "resolution": self.resolution,
        }
        base.update(flatten_capabilities(self.capabilities))
        return {k: v for k, v in base.items() if v is not None}

    def hub_endpoint(self) -> str:
        """Remote WebDriver endpoint with credentials embedded."""
        username, key = self.require_credentials()
        return f"https://{quote(username, safe='')}:{quote(key, safe='')}@{self.hub_host}/wd/hub"

    def build_name(self) -> str:
        """Build name for the dashboard: commit and ref in CI, else the environment."""
        if not self.github_sha:
            return self.app_env

        ref = self.github_ref or self.app_env
        if ref.startswith("refs/"):
            ref = ref[len("refs/"):]
        return f"{self.github_sha} @ {ref}"


def get_settings(**overrides: Any) -> Settings:
    """Get settings, with keyword overrides taking precedence over the environment."""
    return Settings(**overrides)
