"""Log in to LinkedIn in a headed browser and export the session cookies.

Usage:
    .venv/bin/python -m scripts.extract_cookies [--config config/queries.yaml]

Opens a Chromium window. Log in to LinkedIn manually, then press Enter
in the terminal. The LinkedIn cookies are written to the configured
``browser.cookies_path`` and the file is checked the same way the scraper
resolves its session credential.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from patchright.sync_api import sync_playwright

from jobs_scraper.browser.session import (
    SESSION_COOKIE_ENV,
    SESSION_COOKIE_NAME,
    load_session_cookie,
    resolve_session_cookie,
)
from jobs_scraper.core.config import ScraperSettings

LOGIN_URL = "https://www.linkedin.com/login"


def linkedin_cookies(cookies: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Keep only cookies scoped to a LinkedIn domain."""
    return [c for c in cookies if str(c.get("domain", "")).endswith("linkedin.com")]


def save_cookies(cookies: list[dict[str, Any]], path: str) -> int:
    """Write the LinkedIn cookies as a JSON array. Returns how many were saved."""
    kept = linkedin_cookies(cookies)
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(kept, indent=2))
    return len(kept)


def describe_session(settings: ScraperSettings) -> str:
    """Explain which credential the scraper will use with these settings."""
    if not load_session_cookie(settings.browser.cookies_path):
        return f"No '{SESSION_COOKIE_NAME}' cookie found: did the login succeed?"
    if resolve_session_cookie(settings) != load_session_cookie(settings.browser.cookies_path):
        source = "settings" if settings.session_cookie else SESSION_COOKIE_ENV
        return f"Found '{SESSION_COOKIE_NAME}', but {source} takes precedence over the cookie file."
    return f"Found '{SESSION_COOKIE_NAME}': authenticated mode will be used."


def load_settings(config_path: str) -> ScraperSettings:
    if Path(config_path).exists():
        return ScraperSettings.from_yaml(config_path)
    return ScraperSettings()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Export LinkedIn session cookies")
    parser.add_argument(
        "--config",
        default="config/queries.yaml",
        help="Settings YAML providing browser.cookies_path (default: config/queries.yaml)",
    )
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ValueError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    with sync_playwright() as p:
        browser = p.chromium.launch(headless=False)
        context = browser.new_context()
        page = context.new_page()
        page.goto(LOGIN_URL)

        input("\n>>> Log in to LinkedIn, then press Enter here to save cookies...")

        count = save_cookies(context.cookies(), settings.browser.cookies_path)
        browser.close()

    print(f"Saved {count} cookies to {settings.browser.cookies_path}")
    print(describe_session(settings))


if __name__ == "__main__":
    main()
