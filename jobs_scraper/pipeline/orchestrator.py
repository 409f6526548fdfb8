"""Orchestrator: owns the browser and runs every (query, location) session.

Data flow:
  1. Resolve and validate queries (no browser work on failure)
  2. Initialize the browser once, shared by concurrent runs
  3. For each query × location: open an isolated page, run the strategy
  4. Emit ``end`` after completion or a forced exit
"""

import logging
from collections.abc import Callable
from enum import Enum
from types import TracebackType
from typing import Any

from jobs_scraper.browser.actions import poll_until
from jobs_scraper.browser.session import BrowserSession, resolve_session_cookie
from jobs_scraper.core.config import BrowserConfig, Query, QueryOptions, ScraperSettings, resolve_queries
from jobs_scraper.core.errors import InitializationError, InitializationTimeoutError
from jobs_scraper.core.events import EventBus, EventKind, Handler
from jobs_scraper.core.schemas import RunResult
from jobs_scraper.platforms.base import RunStrategy, session_tag
from jobs_scraper.platforms.linkedin.searcher import build_search_url
from jobs_scraper.platforms.linkedin.strategies import select_strategy

INITIALIZE_POLL_INTERVAL_MS = 100

_TARGET_EVENTS: dict[str, EventKind] = {
    "target_created": EventKind.TARGET_CREATED,
    "target_changed": EventKind.TARGET_CHANGED,
    "target_destroyed": EventKind.TARGET_DESTROYED,
}


class SessionState(str, Enum):
    NOT_INITIALIZED = "not_initialized"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"


class LinkedInScraper:
    """Runs LinkedIn job searches and publishes results on an event bus.

    Usage::

        scraper = LinkedInScraper(settings)
        scraper.on(EventKind.DATA, lambda record: print(record.title))
        await scraper.run([{"text": "Engineer", "options": {"limit": 10}}])
        await scraper.close()
    """

    def __init__(
        self,
        settings: ScraperSettings | None = None,
        *,
        session_cookie: str | None = None,
        session_factory: Callable[[BrowserConfig], BrowserSession] = BrowserSession,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings or ScraperSettings()
        self._session_cookie = session_cookie or resolve_session_cookie(self._settings)
        self._session_factory = session_factory
        self._logger = logger or logging.getLogger(__name__)
        self._events = EventBus()
        self._session: BrowserSession | None = None
        self._state = SessionState.NOT_INITIALIZED
        self._strategy = select_strategy(
            self._events, self._session_cookie, self._settings.timeouts, self._logger,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def strategy(self) -> RunStrategy:
        return self._strategy

    @property
    def authenticated(self) -> bool:
        return bool(self._session_cookie)

    def on(self, kind: EventKind, handler: Handler) -> "LinkedInScraper":
        self._events.subscribe(kind, handler)
        return self

    def off(self, kind: EventKind, handler: Handler) -> "LinkedInScraper":
        self._events.unsubscribe(kind, handler)
        return self

    async def run(
        self,
        queries: Query | dict[str, Any] | list[Query | dict[str, Any]],
        options: QueryOptions | dict[str, Any] | None = None,
    ) -> None:
        """Scrape every query in every location.

        ``options`` are global options applied under each query's own options;
        they default to the settings' global options.

        Failures after validation, including a browser that fails to launch,
        are reported as ``error`` events.

        Raises:
            QueryValidationError: a query is malformed. Nothing is scraped.
        """
        resolved = resolve_queries(
            queries, options if options is not None else self._settings.options,
        )

        try:
            if self._state is SessionState.NOT_INITIALIZED:
                await self._initialize()
            elif self._state is SessionState.INITIALIZING:
                await self._wait_for_initialization()
        except InitializationError as e:
            self._logger.error("%s", e)
            self._events.emit(EventKind.ERROR, str(e))
            return

        self._logger.info(
            "Running %d quer%s using %s strategy",
            len(resolved), "y" if len(resolved) == 1 else "ies", self._strategy.name,
        )

        for query in resolved:
            for location in query.options.locations:
                tag = session_tag(query, location)
                self._logger.info("%s Starting new query", tag)
                try:
                    result = await self._run_session(query, location, tag)
                except Exception as e:
                    self._logger.exception("%s Unexpected error", tag)
                    self._events.emit(EventKind.ERROR, f"{tag}\t{e}")
                    continue

                if result.exit:
                    self._logger.warning("Forced termination")
                    self._events.emit(EventKind.END)
                    return

        self._logger.info("All queries completed")
        self._events.emit(EventKind.END)

    async def close(self) -> None:
        """Close the browser. Safe to call more than once."""
        session, self._session = self._session, None
        self._state = SessionState.NOT_INITIALIZED
        if session is not None:
            await session.close()
            self._logger.info("Browser closed")

    async def __aenter__(self) -> "LinkedInScraper":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # --- Private helpers ---

    async def _initialize(self) -> None:
        self._state = SessionState.INITIALIZING
        self._logger.info("Launching browser")

        stale, self._session = self._session, None
        if stale is not None:
            stale.clear_listeners()
            await stale.close()

        session = self._session_factory(self._settings.browser)
        session.add_listener("disconnected", self._on_disconnected)
        for event, kind in _TARGET_EVENTS.items():
            session.add_listener(event, lambda *_, k=kind: self._events.emit(k))

        try:
            await session.start()
        except Exception as e:
            self._logger.exception("Browser launch failed")
            self._state = SessionState.NOT_INITIALIZED
            await session.close()
            msg = f"Browser initialization failed: {e}"
            raise InitializationError(msg) from e

        self._session = session
        self._state = SessionState.INITIALIZED
        self._logger.info("Browser initialized")

    async def _wait_for_initialization(self) -> None:
        self._logger.info("Waiting for browser initialization to complete")

        async def _settled() -> bool:
            return self._state is not SessionState.INITIALIZING

        result = await poll_until(
            _settled,
            timeout_ms=self._settings.timeouts.initialize_ms,
            interval_ms=INITIALIZE_POLL_INTERVAL_MS,
            error="Timeout waiting for browser initialization",
        )
        if not result.success:
            raise InitializationTimeoutError(result.error)
        if self._state is not SessionState.INITIALIZED:
            msg = "Browser initialization failed in a concurrent run"
            raise InitializationError(msg)

    async def _run_session(self, query: Query, location: str, tag: str) -> RunResult:
        if self._session is None:
            msg = "Browser session is not available"
            raise RuntimeError(msg)
        session = self._session

        page = await session.open_page(optimize=query.options.optimize, tag=tag)
        try:
            search_url = build_search_url(
                query.label, location, query.options, authenticated=self.authenticated,
            )
            return await self._strategy.run(page, search_url, query, location)
        finally:
            await session.close_page(page)

    def _on_disconnected(self, *_: Any) -> None:
        self._logger.warning("Browser disconnected")
        # Relaunch on the next run.
        self._state = SessionState.NOT_INITIALIZED
        self._events.emit(EventKind.DISCONNECTED)
