"""Browser session management using patchright.

Rules:
  - One browser process per scraper, shared by concurrent runs
  - One isolated browser context + page per (query, location) session
  - Cookie auth only (no login flow)
  - patchright, not vanilla playwright
"""

import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from types import TracebackType
from typing import Any
from urllib.parse import urlparse

from patchright.async_api import Browser, Page, Playwright, Request, Response, Route, async_playwright

from jobs_scraper.core.config import BrowserConfig, ScraperSettings

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "li_at"
SESSION_COOKIE_ENV = "LI_AT_COOKIE"

ALLOWED_DOMAINS: frozenset[str] = frozenset({"linkedin.com", "licdn.com"})

BLOCKED_RESOURCE_TYPES: frozenset[str] = frozenset({
    "image",
    "stylesheet",
    "media",
    "font",
    "texttrack",
    "object",
    "beacon",
    "csp_report",
    "imageset",
})

BLOCKED_EXTENSIONS: tuple[str, ...] = (".jpg", ".jpeg", ".png", ".gif", ".css")

# Browser-level events; everything else is attached per context.
BROWSER_EVENTS: frozenset[str] = frozenset({"disconnected"})
CONTEXT_EVENTS: frozenset[str] = frozenset({"target_created", "target_changed", "target_destroyed"})


class BrowserSession:
    """Owns one patchright browser and hands out isolated pages.

    Usage::

        async with BrowserSession(config) as session:
            page = await session.open_page(optimize=True)
            await page.goto("https://...")
            await session.close_page(page)
    """

    def __init__(self, config: BrowserConfig) -> None:
        self._config = config
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._listeners: dict[str, list[Callable[..., Any]]] = {}

    @property
    def browser(self) -> Browser:
        """The running browser. Raises if not started."""
        if self._browser is None:
            msg = "BrowserSession not started: call start() or use 'async with'"
            raise RuntimeError(msg)
        return self._browser

    @property
    def is_started(self) -> bool:
        return self._browser is not None

    async def start(self) -> None:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self._config.headless,
            slow_mo=self._config.slow_mo_ms,
            args=list(self._config.args),
        )
        logger.info(
            "Browser launched (headless=%s, slow_mo=%d ms)",
            self._config.headless, self._config.slow_mo_ms,
        )
        for event, handlers in self._listeners.items():
            if event in BROWSER_EVENTS:
                for handler in handlers:
                    self._browser.on(event, handler)

    def add_listener(self, event: str, handler: Callable[..., Any]) -> None:
        """Register a lifecycle listener.

        ``disconnected`` is bound to the browser. The ``target_*`` events are
        bound to every context and page opened afterwards.
        """
        if event not in BROWSER_EVENTS | CONTEXT_EVENTS:
            msg = f"Unknown browser event: {event}"
            raise ValueError(msg)
        self._listeners.setdefault(event, []).append(handler)
        if event in BROWSER_EVENTS and self._browser is not None:
            self._browser.on(event, handler)

    def clear_listeners(self) -> None:
        """Detach every registered listener from the browser."""
        if self._browser is not None:
            for event in BROWSER_EVENTS:
                for handler in self._listeners.get(event, []):
                    self._browser.remove_listener(event, handler)
        self._listeners.clear()

    async def open_page(self, *, optimize: bool = False, tag: str = "") -> Page:
        """Open a page in a fresh browser context with request filtering enabled."""
        context = await self.browser.new_context(
            user_agent=self._config.user_agent,
            bypass_csp=True,
            no_viewport=True,
        )
        context.set_default_timeout(self._config.timeout_ms)
        for handler in self._listeners.get("target_created", []):
            context.on("page", lambda p, h=handler: h())

        page = await context.new_page()
        self._attach_page_listeners(page)

        async def _on_route(route: Route) -> None:
            request = route.request
            if should_block_request(request.url, request.resource_type, optimize=optimize):
                await route.abort()
            else:
                await route.continue_()

        await page.route("**/*", _on_route)
        page.on("response", lambda response: _log_response(response, tag))
        return page

    async def close_page(self, page: Page) -> None:
        """Close a page together with its isolated context."""
        await page.context.close()

    async def close(self) -> None:
        try:
            if self._browser is not None:
                self.clear_listeners()
                await self._browser.close()
            if self._playwright is not None:
                await self._playwright.stop()
        finally:
            self._browser = None
            self._playwright = None

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _attach_page_listeners(self, page: Page) -> None:
        for handler in self._listeners.get("target_changed", []):
            page.on(
                "framenavigated",
                lambda frame, h=handler: h() if frame == page.main_frame else None,
            )
        for handler in self._listeners.get("target_destroyed", []):
            page.on("close", lambda p, h=handler: h())


def should_block_request(url: str, resource_type: str, *, optimize: bool) -> bool:
    """Decide whether an outgoing request is aborted.

    Tracking calls and third-party domains are always blocked. With
    ``optimize``, heavy resource types are blocked as well.
    """
    parsed = urlparse(url)
    hostname = (parsed.hostname or "").lower()
    domain = ".".join(hostname.split(".")[-2:])

    if "li/track" in parsed.path or domain not in ALLOWED_DOMAINS:
        return True

    if optimize:
        if resource_type in BLOCKED_RESOURCE_TYPES:
            return True
        if any(ext in url for ext in BLOCKED_EXTENSIONS):
            return True

    return False


def _log_response(response: Response, tag: str) -> None:
    if response.status == 429:
        logger.warning(
            "%s Error 429 too many requests. Use a higher slow_mo_ms and/or fewer concurrent queries.",
            tag,
        )
    elif response.status >= 400:
        request: Request = response.request
        logger.warning("%s %d error for request %s", tag, response.status, request.url)


def _load_cookies(path: str) -> list[Any]:
    """Load cookies from a JSON file. Returns empty list on any failure."""
    cookie_path = Path(path)
    if not cookie_path.exists():
        logger.debug("Cookie file not found: %s", path)
        return []
    try:
        data = json.loads(cookie_path.read_text())
        if isinstance(data, list):
            return data
        logger.warning("Cookie file is not a JSON array: %s", path)
        return []
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to load cookies from %s: %s", path, e)
        return []


def load_session_cookie(path: str) -> str | None:
    """Return the ``li_at`` value from an exported cookie file, if any."""
    for cookie in _load_cookies(path):
        if isinstance(cookie, dict) and cookie.get("name") == SESSION_COOKIE_NAME:
            value = cookie.get("value")
            if value:
                return str(value)
    return None


def resolve_session_cookie(settings: ScraperSettings) -> str | None:
    """Session credential precedence: settings → LI_AT_COOKIE env → cookie file."""
    if settings.session_cookie:
        return settings.session_cookie
    env_value = os.environ.get(SESSION_COOKIE_ENV, "").strip()
    if env_value:
        return env_value
    return load_session_cookie(settings.browser.cookies_path)
