"""LinkedIn run strategies: authenticated (session cookie) and anonymous (guest).

The variant is chosen once per scraper with ``select_strategy``.
"""

import logging
from typing import Any
from urllib.parse import urlparse

from jobs_scraper.browser.actions import evaluate_quietly
from jobs_scraper.browser.session import SESSION_COOKIE_NAME
from jobs_scraper.core.config import Query, TimeoutConfig
from jobs_scraper.core.events import EventBus, EventKind
from jobs_scraper.core.schemas import RunResult
from jobs_scraper.platforms.base import RunStrategy, session_tag
from jobs_scraper.platforms.linkedin.paginator import InfiniteScrollPaginator, OffsetPaginator, Paginator
from jobs_scraper.platforms.linkedin.searcher import HOME_URL, RESULTS_PER_PAGE, with_offset
from jobs_scraper.platforms.linkedin.selectors import (
    ANONYMOUS_PROFILES,
    AUTHENTICATED_PROFILES,
    LayoutProfile,
)

SESSION_COOKIE_DOMAIN = ".www.linkedin.com"

HIDE_CHAT_PANEL_JS = """(selector) => {
    const div = document.querySelector(selector);
    if (div) {
        div.style.display = "none";
    }
}"""

ACCEPT_COOKIES_JS = """() => {
    const button = Array.from(document.querySelectorAll("button"))
        .find(e => e.innerText.includes("Accept cookies"));
    if (button) {
        button.click();
    }
}"""

ACCEPT_PRIVACY_JS = """(selector) => {
    const button = Array.from(document.querySelectorAll(selector))
        .find(e => e.innerText === "Accept");
    if (button) {
        button.click();
    }
}"""


def needs_authentication(url: str) -> bool:
    """LinkedIn redirects to an ``/authwall`` path when it demands a login."""
    return "authwall" in urlparse(url).path.lower()


async def has_session_cookie(page: Any) -> bool:
    cookies = await page.context.cookies()
    return any(c.get("name") == SESSION_COOKIE_NAME for c in cookies)


class AuthenticatedStrategy(RunStrategy):
    """Logged-in scraping with the ``li_at`` cookie and numbered pages."""

    profiles = AUTHENTICATED_PROFILES

    def __init__(
        self,
        events: EventBus,
        session_cookie: str,
        timeouts: TimeoutConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(events, timeouts, logger)
        self._session_cookie = session_cookie

    @property
    def name(self) -> str:
        return "authenticated"

    async def run(self, page: Any, search_url: str, query: Query, location: str) -> RunResult:
        tag = session_tag(query, location)

        self._logger.debug("%s Opening %s", tag, HOME_URL)
        await page.goto(HOME_URL, wait_until="load")

        self._logger.info("%s Setting authentication cookie", tag)
        await page.context.add_cookies([{
            "name": SESSION_COOKIE_NAME,
            "value": self._session_cookie,
            "domain": SESSION_COOKIE_DOMAIN,
            "path": "/",
        }])

        url = with_offset(search_url, query.options.page_offset * RESULTS_PER_PAGE)
        self._logger.info("%s Opening %s", tag, url)
        await page.goto(url, wait_until="load")

        if needs_authentication(page.url) or not await has_session_cookie(page):
            self._logger.error(
                "%s The provided session cookie is invalid. "
                "Export a fresh li_at cookie (see scripts/extract_cookies.py).",
                tag,
            )
            self._events.emit(EventKind.INVALID_SESSION)
            return RunResult(exit=True)

        profile = await self._resolve_profile(page, tag)
        if profile is None:
            self._logger.info("%s No jobs found, skip", tag)
            return RunResult(exit=False)

        return await self._scrape(page, query, location, profile)

    def _make_paginator(self, profile: LayoutProfile) -> Paginator:
        return OffsetPaginator(profile, self._timeouts, logger=self._logger)

    async def _check_session(self, page: Any, tag: str) -> None:
        if await has_session_cookie(page):
            self._logger.info("%s Session is valid", tag)
            return
        self._logger.warning("%s Session is invalid, this may cause the scraper to fail.", tag)
        self._events.emit(EventKind.INVALID_SESSION)

    async def _housekeeping(self, page: Any, profile: LayoutProfile, tag: str) -> None:
        if profile.chat_panel:
            await evaluate_quietly(page, HIDE_CHAT_PANEL_JS, profile.chat_panel, tag=tag)
        await evaluate_quietly(page, ACCEPT_COOKIES_JS, tag=tag)
        if profile.privacy_accept_button:
            await evaluate_quietly(page, ACCEPT_PRIVACY_JS, profile.privacy_accept_button, tag=tag)


class AnonymousStrategy(RunStrategy):
    """Guest scraping on the public infinite-scroll search page.

    LinkedIn frequently answers guests with an auth wall; that ends the whole
    run since nothing can be scraped without credentials.
    """

    profiles = ANONYMOUS_PROFILES

    @property
    def name(self) -> str:
        return "anonymous"

    async def run(self, page: Any, search_url: str, query: Query, location: str) -> RunResult:
        tag = session_tag(query, location)

        self._logger.info("%s Opening %s", tag, search_url)
        await page.goto(search_url, wait_until="load")

        if needs_authentication(page.url):
            self._logger.error(
                "%s Scraper failed to run in anonymous mode, authentication may be "
                "necessary for this environment. Configure a session cookie.",
                tag,
            )
            return RunResult(exit=True)

        profile = await self._resolve_profile(page, tag)
        if profile is None:
            self._logger.info("%s Failed to load container selector, skip", tag)
            return RunResult(exit=False)

        return await self._scrape(page, query, location, profile)

    def _make_paginator(self, profile: LayoutProfile) -> Paginator:
        return InfiniteScrollPaginator(profile, self._timeouts, logger=self._logger)

    async def _housekeeping(self, page: Any, profile: LayoutProfile, tag: str) -> None:
        await evaluate_quietly(page, ACCEPT_COOKIES_JS, tag=tag)


def select_strategy(
    events: EventBus,
    session_cookie: str | None,
    timeouts: TimeoutConfig | None = None,
    logger: logging.Logger | None = None,
) -> RunStrategy:
    """Authenticated when a session cookie is configured, anonymous otherwise."""
    if session_cookie:
        return AuthenticatedStrategy(events, session_cookie, timeouts, logger)
    return AnonymousStrategy(events, timeouts, logger)
