"""
Browser slug parsing.

A slug names the platform a test suite should run on, e.g.:

    WINDOWS_10_CHROME90     -> Windows 10, Chrome 90
    MACOS_CATALINA_SAFARI   -> OS X Catalina, latest Safari
    IOS_IPHONE_12           -> real iPhone 12
    ANDROID_PIXEL_5         -> real Pixel 5

Desktop slugs are an OS token followed by a browser token with an optional
version. Mobile slugs are a platform prefix followed by the device name.
Anything else raises UnrecognizedSlugError.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from selenium.webdriver.common.desired_capabilities import DesiredCapabilities

from browserstack_grid.errors import UnrecognizedSlugError


MAC_OS = "OS X"
WINDOWS = "Windows"

# Token -> (os, os_version)
DESKTOP_OS: dict[str, tuple[str, str]] = {
    "MACOS_SEQUOIA": (MAC_OS, "Sequoia"),
    "MACOS_SONOMA": (MAC_OS, "Sonoma"),
    "MACOS_VENTURA": (MAC_OS, "Ventura"),
    "MACOS_MONTEREY": (MAC_OS, "Monterey"),
    "MACOS_BIG_SUR": (MAC_OS, "Big Sur"),
    "MACOS_CATALINA": (MAC_OS, "Catalina"),
    "MACOS_MOJAVE": (MAC_OS, "Mojave"),
    "MACOS_HIGH_SIERRA": (MAC_OS, "High Sierra"),
    "MACOS_SIERRA": (MAC_OS, "Sierra"),
    "MACOS_EL_CAPITAN": (MAC_OS, "El Capitan"),
    "MACOS_YOSEMITE": (MAC_OS, "Yosemite"),
    "MACOS_MAVERICKS": (MAC_OS, "Mavericks"),
    "MACOS_MOUNTAIN_LION": (MAC_OS, "Mountain Lion"),
    "MACOS_LION": (MAC_OS, "Lion"),
    "MACOS_SNOW_LEOPARD": (MAC_OS, "Snow Leopard"),
    "WINDOWS_11": (WINDOWS, "11"),
    "WINDOWS_10": (WINDOWS, "10"),
    "WINDOWS_8.1": (WINDOWS, "8.1"),
    "WINDOWS_8": (WINDOWS, "8"),
    "WINDOWS_7": (WINDOWS, "7"),
    "WINDOWS_XP": (WINDOWS, "XP"),
}

# Token -> W3C browserName
BROWSER_NAMES: dict[str, str] = {
    "IE": DesiredCapabilities.INTERNETEXPLORER["browserName"],
    "EDGE": DesiredCapabilities.EDGE["browserName"],
    "CHROME": DesiredCapabilities.CHROME["browserName"],
    "FIREFOX": DesiredCapabilities.FIREFOX["browserName"],
    "SAFARI": DesiredCapabilities.SAFARI["browserName"],
    "OPERA": "opera",
}

MOBILE_PREFIXES = ("IOS_", "ANDROID_")

# Device family -> platform defaults merged underneath the device fields
MOBILE_DEFAULTS: dict[str, dict[str, str]] = {
    "android": {"browserName": "android", "platform": "ANDROID"},
    "iphone": {"browserName": "iPhone", "platform": "MAC"},
    "ipad": {"browserName": "iPad", "platform": "MAC"},
}

FIREFOX_OPTIONS_KEY = "moz:firefoxOptions"

# Firefox renders JSON responses in its devtools viewer and parses pages for
# reader mode; both interfere with tests asserting on raw responses.
FIREFOX_SAFE_JSON_PREFS: dict[str, bool] = {
    "devtools.jsonview.enabled": False,
    "reader.parse-on-load.enabled": False,
}

# Longest tokens first so WINDOWS_8.1 wins over WINDOWS_8 and MACOS_HIGH_SIERRA over MACOS_SIERRA
_OS_TOKENS = sorted(DESKTOP_OS, key=len, reverse=True)

_BROWSER_RE = re.compile(
    r"^_(?P<browser>" + "|".join(BROWSER_NAMES) + r")(?P<version>\d+(?:\.\d+)?)?$"
)
_MOBILE_RE = re.compile(r"^(?P<platform>ANDROID|IOS)_(?P<device>\S+)$")


@dataclass(frozen=True)
class ParsedSlug:
    """OS and browser capability fragments derived from a slug."""
    slug: str
    os: dict[str, Any] = field(default_factory=dict)
    browser: dict[str, Any] = field(default_factory=dict)

    @property
    def is_mobile(self) -> bool:
        return bool(self.os.get("real_mobile"))

    def capabilities(self) -> dict[str, Any]:
        """Merge the fragments, browser over OS."""
        return {**self.os, **self.browser}


def is_mobile_slug(slug: str) -> bool:
    """Check whether the slug targets a real mobile device."""
    return slug.startswith(MOBILE_PREFIXES)


def _split_desktop(slug: str) -> tuple[str, str]:
    """Split a desktop slug into its OS token and the remainder."""
    for token in _OS_TOKENS:
        if slug.startswith(token):
            return token, slug[len(token):]

    raise UnrecognizedSlugError(
        slug,
        f"expected it to start with one of {', '.join(DESKTOP_OS)} "
        f"or a mobile prefix ({', '.join(p.rstrip('_') for p in MOBILE_PREFIXES)})",
    )


def detect_mobile_os(slug: str) -> dict[str, Any]:
    """Device capabilities for a mobile slug such as IOS_IPHONE_12."""
    match = _MOBILE_RE.match(slug)
    device = match.group("device").replace("_", " ").strip() if match else ""
    if not device:
        raise UnrecognizedSlugError(slug, "expected a device name after the platform prefix")

    platform = match.group("platform")
    if platform == "ANDROID":
        family = "android"
    else:
        family = "iphone" if "IPHONE" in device else "ipad"

    return {
        **MOBILE_DEFAULTS[family],
        "device": device,
        "real_mobile": True,
    }


def detect_os(slug: str) -> dict[str, Any]:
    """OS capabilities for a slug; delegates to detect_mobile_os for devices."""
    if not slug:
        raise UnrecognizedSlugError(slug, "slug is empty")

    if is_mobile_slug(slug):
        return detect_mobile_os(slug)

    token, _ = _split_desktop(slug)
    os_name, os_version = DESKTOP_OS[token]
    return {"os": os_name, "os_version": os_version}


def detect_browser(slug: str, *, firefox_safe_json: bool = True) -> dict[str, Any]:
    """Browser capabilities for a desktop slug such as WINDOWS_10_CHROME90.

    Args:
        slug: Desktop browser slug
        firefox_safe_json: Disable Firefox's JSON viewer and reader mode parsing

    Returns:
        Dict with browser, browser_version (when present) and browserName
    """
    if not slug:
        raise UnrecognizedSlugError(slug, "slug is empty")

    _, remainder = _split_desktop(slug)
    match = _BROWSER_RE.match(remainder)
    if not match:
        raise UnrecognizedSlugError(
            slug,
            f"expected a browser token ({', '.join(BROWSER_NAMES)}) with an optional "
            f"numeric version after the OS, got {remainder!r}",
        )

    browser = match.group("browser")
    capabilities: dict[str, Any] = {
        "browserName": BROWSER_NAMES[browser],
        "browser": browser,
    }
    if match.group("version"):
        capabilities["browser_version"] = match.group("version")

    if browser == "FIREFOX" and firefox_safe_json:
        capabilities[FIREFOX_OPTIONS_KEY] = {"prefs": dict(FIREFOX_SAFE_JSON_PREFS)}

    return capabilities


def parse_slug(slug: str, *, firefox_safe_json: bool = True) -> ParsedSlug:
    """Parse a slug into OS and browser fragments.

    Raises:
        UnrecognizedSlugError: If any part of the slug is not recognized
    """
    slug = (slug or "").strip().upper()

    if is_mobile_slug(slug):
        # Device defaults already carry the browser
        return ParsedSlug(slug=slug, os=detect_mobile_os(slug))

    return ParsedSlug(
        slug=slug,
        os=detect_os(slug),
        browser=detect_browser(slug, firefox_safe_json=firefox_safe_json),
    )
