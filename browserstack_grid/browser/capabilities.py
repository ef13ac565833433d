"""
Capability assembly for remote and local sessions.

Remote capabilities are merged in a fixed precedence, lowest first:

    global options -> OS fragment -> browser fragment -> session identity

The identity fields (project, build, name) always win on key collisions.
"""

import copy
from dataclasses import asdict, dataclass
from typing import Any, Mapping

import structlog
from selenium.webdriver import ChromeOptions, EdgeOptions, FirefoxOptions, IeOptions, SafariOptions
from selenium.webdriver.common.options import BaseOptions

from browserstack_grid.browser.slugs import FIREFOX_OPTIONS_KEY, ParsedSlug, parse_slug

logger = structlog.get_logger(__name__)


LOCAL_CHROME_ARGUMENTS = [
    "--disable-gpu",
    "--headless",
    "--window-size=1920,1080",
]

_OPTIONS_BY_BROWSER_NAME = {
    "chrome": ChromeOptions,
    "firefox": FirefoxOptions,
    "MicrosoftEdge": EdgeOptions,
    "safari": SafariOptions,
    "internet explorer": IeOptions,
}


@dataclass(frozen=True)
class SessionIdentity:
    """Names shown for a session in the BrowserStack dashboard."""
    project: str
    build: str
    name: str

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


def flatten_capabilities(nested: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten a nested capability map into dot-separated keys.

    Example:
        >>> flatten_capabilities({"browserstack": {"local": True}, "resolution": "1024x768"})
        {'browserstack.local': True, 'resolution': '1024x768'}
    """
    flat: dict[str, Any] = {}
    for key, value in nested.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping) and value:
            flat.update(flatten_capabilities(value, full_key))
        else:
            flat[full_key] = value
    return flat


def assemble_capabilities(
    global_options: Mapping[str, Any],
    os_fragment: Mapping[str, Any],
    browser_fragment: Mapping[str, Any],
    identity: SessionIdentity,
) -> dict[str, Any]:
    """Merge capability sources, later sources winning. Does no I/O."""
    return {
        **global_options,
        **os_fragment,
        **browser_fragment,
        **identity.as_dict(),
    }


class CapabilityCache:
    """Memoizes the slug-derived capabilities for the lifetime of a run.

    Only the part that depends on the slug is cached; the session identity is
    merged on every call.
    """

    def __init__(self, global_options: Mapping[str, Any], firefox_safe_json: bool = True):
        self.global_options = dict(global_options)
        self.firefox_safe_json = firefox_safe_json
        self._parsed: dict[str, ParsedSlug] = {}

    def __len__(self) -> int:
        return len(self._parsed)

    def parsed(self, slug: str) -> ParsedSlug:
        """Parse a slug once and remember the result."""
        if slug not in self._parsed:
            self._parsed[slug] = parse_slug(slug, firefox_safe_json=self.firefox_safe_json)
            logger.debug("Parsed browser slug", slug=slug, capabilities=self._parsed[slug].capabilities())
        return self._parsed[slug]

    def capabilities_for(self, slug: str, identity: SessionIdentity) -> dict[str, Any]:
        """Full capability map for a slug and session identity.

        The map is a deep copy, so callers may change it without touching the cache.
        """
        parsed = self.parsed(slug)
        return copy.deepcopy(assemble_capabilities(self.global_options, parsed.os, parsed.browser, identity))

    def clear(self) -> None:
        self._parsed.clear()


def local_chrome_options() -> ChromeOptions:
    """Fixed capability set for local headless Chrome."""
    options = ChromeOptions()
    for argument in LOCAL_CHROME_ARGUMENTS:
        options.add_argument(argument)
    return options


def options_for_capabilities(capabilities: Mapping[str, Any]) -> BaseOptions:
    """Wrap a flat capability map in the Selenium Options matching its browserName.

    Firefox preferences are applied through FirefoxOptions so they land in the
    browser profile. Browsers without a dedicated Options class fall back to
    ChromeOptions with browserName overridden.
    """
    caps = dict(capabilities)
    options_class = _OPTIONS_BY_BROWSER_NAME.get(caps.get("browserName"), ChromeOptions)
    options = options_class()

    firefox_options = caps.pop(FIREFOX_OPTIONS_KEY, None)
    if firefox_options is not None:
        if isinstance(options, FirefoxOptions):
            for name, value in firefox_options.get("prefs", {}).items():
                options.set_preference(name, value)
        else:
            caps[FIREFOX_OPTIONS_KEY] = firefox_options

    for key, value in caps.items():
        options.set_capability(key, value)
    return options
