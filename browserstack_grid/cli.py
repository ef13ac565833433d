"""Command line helpers for the BrowserStack grid integration.

Usage:
    python -m browserstack_grid capabilities WINDOWS_10_CHROME90 --name "Login @ test_login"
    python -m browserstack_grid publish-config .env.browserstack
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices

from browserstack_grid.browser.capabilities import CapabilityCache, SessionIdentity
from browserstack_grid.config import Settings, get_settings
from browserstack_grid.errors import UnrecognizedSlugError
from browserstack_grid.utils.logging import configure_logging


ENV_HEADER = """\
# BrowserStack grid settings.
# Credentials: https://www.browserstack.com/accounts/settings
# Capabilities: https://www.browserstack.com/automate/capabilities
# Dict settings (CAPABILITIES, ARGUMENTS) take JSON.
"""


def env_var_name(field_name: str) -> str:
    """Environment variable a Settings field is read from."""
    field = Settings.model_fields[field_name]
    alias = field.validation_alias
    if isinstance(alias, AliasChoices):
        return str(alias.choices[0])
    prefix = Settings.model_config.get("env_prefix", "")
    return f"{prefix}{field_name}".upper()


def _format_default(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def render_env_template() -> str:
    """A commented .env template listing every setting with its default."""
    lines = [ENV_HEADER]
    for name, field in Settings.model_fields.items():
        if field.description:
            lines.append(f"# {field.description}")
        default = field.get_default(call_default_factory=True)
        lines.append(f"# {env_var_name(name)}={_format_default(default)}")
        lines.append("")
    return "\n".join(lines)


def cmd_capabilities(args: argparse.Namespace) -> int:
    settings = get_settings()
    cache = CapabilityCache(
        settings.global_capabilities(),
        firefox_safe_json=settings.firefox_safe_json,
    )
    identity = SessionIdentity(
        project=args.project or settings.project_name,
        build=args.build or settings.build_name(),
        name=args.name,
    )

    try:
        capabilities = cache.capabilities_for(args.slug, identity)
    except UnrecognizedSlugError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(json.dumps(capabilities, indent=2, sort_keys=True))
    return 0


def cmd_publish_config(args: argparse.Namespace) -> int:
    path = Path(args.path)
    if path.exists() and not args.force:
        print(f"Error: {path} already exists (use --force to overwrite)", file=sys.stderr)
        return 1

    path.write_text(render_env_template(), encoding="utf-8")
    print(f"Wrote {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="browserstack-grid",
        description="Inspect browser slugs and publish BrowserStack settings",
    )
    parser.add_argument("--log-level", default="WARNING", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    caps = subparsers.add_parser("capabilities", help="Print the capabilities a slug resolves to")
    caps.add_argument("slug", help="Browser slug, e.g. WINDOWS_10_CHROME90")
    caps.add_argument("--project", "-p", help="Project name (default: configured project)")
    caps.add_argument("--build", "-b", help="Build name (default: derived from CI metadata)")
    caps.add_argument("--name", "-n", default="cli", help="Session name")
    caps.set_defaults(func=cmd_capabilities)

    publish = subparsers.add_parser("publish-config", help="Write a .env template of all settings")
    publish.add_argument("path", nargs="?", default=".env.browserstack", help="Output file")
    publish.add_argument("--force", "-f", action="store_true", help="Overwrite an existing file")
    publish.set_defaults(func=cmd_publish_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level)
    return args.func(args)
