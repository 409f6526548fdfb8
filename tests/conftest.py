"""Shared fakes simulating LinkedIn's search page for strategy and orchestrator tests.

FakePage answers the in-page scripts by identity of the script constants, so
the tests exercise the real extractor, paginators and strategies.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest
from patchright.async_api import TimeoutError as PlaywrightTimeoutError

from jobs_scraper.browser.actions import CLICK_JS, COUNT_JS
from jobs_scraper.browser.session import SESSION_COOKIE_ENV
from jobs_scraper.core.config import BrowserConfig, TimeoutConfig
from jobs_scraper.platforms.linkedin import parser, strategies
from jobs_scraper.platforms.linkedin.paginator import SCROLL_AND_COUNT_JS
from jobs_scraper.platforms.linkedin.searcher import current_offset

AUTHWALL_URL = "https://www.linkedin.com/authwall?trk=qf&original_referer="

_NOOP_SCRIPTS = (
    strategies.HIDE_CHAT_PANEL_JS,
    strategies.ACCEPT_COOKIES_JS,
    strategies.ACCEPT_PRIVACY_JS,
)


@dataclass
class FakeJob:
    job_id: str
    title: str = "Python Developer"
    company: str = "Acme Corp"
    place: str = "Remote"
    description: str = "Build scrapers in Python."
    promoted: bool = False
    details_ready: bool = True
    broken: bool = False
    apply_href: str | None = None
    apply_target: str | None = None
    skills: list[str] = field(default_factory=list)
    criteria: dict[str, str] = field(default_factory=dict)


def make_jobs(n: int, prefix: str = "job") -> list[FakeJob]:
    return [FakeJob(job_id=f"{prefix}{i}", title=f"Job {prefix}{i}") for i in range(n)]


class FakeTarget:
    """A page opened by clicking an apply button."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class FakeContext:
    def __init__(self, *, accept_cookies: bool = True) -> None:
        self.accept_cookies = accept_cookies
        self.pages: list[Any] = []
        self.closed = False
        self._cookies: list[dict[str, Any]] = []

    async def cookies(self) -> list[dict[str, Any]]:
        return list(self._cookies)

    async def add_cookies(self, cookies: list[dict[str, Any]]) -> None:
        if self.accept_cookies:
            self._cookies.extend(cookies)

    def drop_cookie(self, name: str) -> None:
        self._cookies = [c for c in self._cookies if c.get("name") != name]

    async def close(self) -> None:
        self.closed = True


class FakePage:
    """Simulated LinkedIn search page.

    ``mode="offset"`` shows ``page_size`` jobs per ``start`` offset.
    ``mode="scroll"`` shows ``batch`` jobs and reveals another batch per scroll.
    """

    def __init__(
        self,
        jobs: list[FakeJob],
        *,
        mode: str = "offset",
        page_size: int = 25,
        batch: int = 25,
        containers: set[str] | None = None,
        authwall: bool = False,
        accept_cookies: bool = True,
        expire_session_on_advance: bool = False,
        skills_present: bool = True,
        custom_description: str = "Custom description",
    ) -> None:
        self.jobs = jobs
        self.mode = mode
        self.page_size = page_size
        self.batch = batch
        self.present: set[str] = set(containers or ())
        self.authwall = authwall
        self.expire_session_on_advance = expire_session_on_advance
        self.skills_present = skills_present
        self.custom_description = custom_description
        self.url = "about:blank"
        self.gotos: list[str] = []
        self.clicked: list[str] = []
        self.read_indexes: list[int] = []
        self.loaded = min(batch, len(jobs))
        self._context = FakeContext(accept_cookies=accept_cookies)
        self._context.pages.append(self)
        self._profile: dict[str, Any] = {}
        self._selected: FakeJob | None = None

    @property
    def context(self) -> FakeContext:
        return self._context

    # --- patchright Page surface ---

    async def goto(self, url: str, wait_until: str | None = None) -> None:
        self.gotos.append(url)
        if "/jobs/search" in url and self.authwall:
            self.url = AUTHWALL_URL
            return
        if self.expire_session_on_advance and current_offset(url) > 0:
            self._context.drop_cookie("li_at")
        self.url = url

    async def wait_for_selector(self, selector: str, timeout: float | None = None) -> object:
        present = set(self.present)
        if self.skills_present and self._profile.get("skills"):
            present.add(self._profile["skills"])
        if selector in present:
            return object()
        msg = f"Timeout {timeout}ms exceeded waiting for {selector}"
        raise PlaywrightTimeoutError(msg)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if script == COUNT_JS:
            return len(self.visible_jobs())
        if script == SCROLL_AND_COUNT_JS:
            self.loaded = min(self.loaded + self.batch, len(self.jobs))
            return len(self.visible_jobs())
        if script == CLICK_JS:
            return self._click(arg)
        if script == parser.READ_CARD_JS:
            return self._read_card(arg["index"], arg["profile"])
        if script == parser.DETAILS_READY_JS:
            job = self._selected
            return bool(job and job.job_id == arg["jobId"] and job.details_ready)
        if script == parser.DESCRIPTION_JS:
            job = self._require_selected()
            return [job.description, f"<div>{job.description}</div>"]
        if script == parser.DESCRIPTION_HTML_JS:
            job = self._require_selected()
            return f"<div>{job.description}</div>"
        if script == parser.TEXT_JS:
            return ""
        if script == parser.ATTRIBUTE_JS:
            if arg["selector"] == self._profile.get("apply_anchor"):
                return self._require_selected().apply_href
            return None
        if script == parser.TEXT_LIST_JS:
            if arg == self._profile.get("skills"):
                return list(self._require_selected().skills)
            return []
        if script == parser.CRITERIA_JS:
            return dict(self._require_selected().criteria)
        if script in _NOOP_SCRIPTS:
            return None
        # description_fn supplied by the query
        return self.custom_description

    # --- Simulation helpers ---

    def visible_jobs(self) -> list[FakeJob]:
        if self.url == AUTHWALL_URL:
            return []
        if self.mode == "scroll":
            return self.jobs[:self.loaded]
        start = current_offset(self.url)
        return self.jobs[start:start + self.page_size]

    def _read_card(self, index: int, profile: dict[str, Any]) -> dict[str, Any]:
        self._profile = profile
        self.read_indexes.append(index)
        visible = self.visible_jobs()
        if index >= len(visible):
            msg = f"Item {index} not found"
            raise RuntimeError(msg)
        job = visible[index]
        if job.broken:
            msg = f"Link not found for item {index}"
            raise RuntimeError(msg)
        self._selected = job
        return {
            "jobId": job.job_id,
            "link": f"https://www.linkedin.com/jobs/view/{job.job_id}/",
            "title": job.title,
            "company": job.company,
            "companyImgLink": None,
            "place": job.place,
            "date": "2026-10-01",
            "isPromoted": job.promoted and profile.get("promoted_label") is not None,
        }

    def _require_selected(self) -> FakeJob:
        if self._selected is None:
            msg = "No job selected"
            raise RuntimeError(msg)
        return self._selected

    def _click(self, selector: str) -> bool:
        self.clicked.append(selector)
        if selector == self._profile.get("load_more_button"):
            return self.loaded < len(self.jobs)
        if selector == self._profile.get("apply_button"):
            job = self._require_selected()
            if job.apply_target:
                self._context.pages.append(FakeTarget(job.apply_target))
            return True
        return False


class FakeSession:
    """Stands in for BrowserSession: hands out pre-built FakePages in order."""

    def __init__(
        self,
        pages: list[FakePage] | None = None,
        *,
        fail_start: bool = False,
        start_delay: float = 0,
    ) -> None:
        self.pages = list(pages or [])
        self.fail_start = fail_start
        self.start_delay = start_delay
        self.started = 0
        self.closed = 0
        self.opened: list[FakePage] = []
        self.closed_pages: list[FakePage] = []
        self.listeners: dict[str, list[Any]] = {}
        self.config: BrowserConfig | None = None

    def __call__(self, config: BrowserConfig) -> "FakeSession":
        self.config = config
        return self

    async def start(self) -> None:
        if self.start_delay:
            await asyncio.sleep(self.start_delay)
        if self.fail_start:
            msg = "Browser failed to launch"
            raise RuntimeError(msg)
        self.started += 1

    def add_listener(self, event: str, handler: Any) -> None:
        self.listeners.setdefault(event, []).append(handler)

    def clear_listeners(self) -> None:
        self.listeners.clear()

    def fire(self, event: str) -> None:
        for handler in list(self.listeners.get(event, [])):
            handler()

    async def open_page(self, *, optimize: bool = False, tag: str = "") -> FakePage:
        page = self.pages.pop(0) if self.pages else FakePage([])
        self.opened.append(page)
        return page

    async def close_page(self, page: FakePage) -> None:
        await page.context.close()
        self.closed_pages.append(page)

    async def close(self) -> None:
        self.clear_listeners()
        self.closed += 1


@pytest.fixture(autouse=True)
def _no_ambient_session_cookie(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(SESSION_COOKIE_ENV, raising=False)


@pytest.fixture()
def fast_timeouts() -> TimeoutConfig:
    return TimeoutConfig(
        container_ms=10,
        details_ms=20,
        pagination_ms=20,
        load_more_ms=20,
        skills_ms=10,
        apply_link_ms=30,
        initialize_ms=200,
        poll_interval_ms=5,
    )
