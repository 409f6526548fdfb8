"""Abstract run strategy: drives one (query, location) session.

The pagination/item loop is shared; variants decide how the session starts,
how it is validated and how pagination works.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from patchright.async_api import TimeoutError as PlaywrightTimeoutError

from jobs_scraper.core.config import Query, TimeoutConfig
from jobs_scraper.core.errors import ExtractionError
from jobs_scraper.core.events import EventBus, EventKind
from jobs_scraper.core.schemas import Metrics, RunResult
from jobs_scraper.platforms.linkedin.paginator import Paginator
from jobs_scraper.platforms.linkedin.parser import ItemExtractor
from jobs_scraper.platforms.linkedin.selectors import LayoutProfile


def session_tag(query: Query, location: str) -> str:
    """Log/metric context for a session: ``[query][location]``."""
    return f"[{query.label}][{location}]"


class RunStrategy(ABC):
    """Base class every run strategy must implement."""

    #: Layout profiles tried in order when the search page opens.
    profiles: tuple[LayoutProfile, ...] = ()

    def __init__(
        self,
        events: EventBus,
        timeouts: TimeoutConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._events = events
        self._timeouts = timeouts or TimeoutConfig()
        self._logger = logger or logging.getLogger(__name__)

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs (e.g. 'authenticated')."""

    @abstractmethod
    async def run(self, page: Any, search_url: str, query: Query, location: str) -> RunResult:
        """Scrape one (query, location) pair on ``page``."""

    @abstractmethod
    def _make_paginator(self, profile: LayoutProfile) -> Paginator:
        """Pagination controller matching this variant's rendering mode."""

    async def _check_session(self, page: Any, tag: str) -> None:
        """Re-validate the session at the top of every pagination round."""

    async def _housekeeping(self, page: Any, profile: LayoutProfile, tag: str) -> None:
        """Dismiss overlays. Must never raise."""

    async def _resolve_profile(self, page: Any, tag: str) -> LayoutProfile | None:
        """Return the first profile whose result container appears, or None."""
        for profile in self.profiles:
            self._logger.debug("%s Waiting for container of layout '%s'", tag, profile.name)
            try:
                await page.wait_for_selector(
                    profile.container, timeout=self._timeouts.container_ms,
                )
            except PlaywrightTimeoutError:
                self._logger.debug("%s Layout '%s' not found", tag, profile.name)
                continue
            self._logger.info("%s Using layout '%s'", tag, profile.name)
            return profile
        return None

    def _emit_metrics(self, metrics: Metrics, tag: str) -> None:
        self._events.emit(EventKind.METRICS, metrics.snapshot())
        self._logger.info("%s Metrics: %s", tag, metrics.model_dump())

    async def _scrape(
        self, page: Any, query: Query, location: str, profile: LayoutProfile,
    ) -> RunResult:
        """Pagination loop around the item loop. Ends on limit, no items, or no more pages."""
        tag = session_tag(query, location)
        limit = query.options.limit
        metrics = Metrics()
        extractor = ItemExtractor(profile, query, location, self._timeouts, self._logger)
        paginator = self._make_paginator(profile)

        item_index = 0
        pages_advanced = 0

        while metrics.processed < limit:
            await self._check_session(page, tag)
            await self._housekeeping(page, profile, tag)

            if paginator.resets_index:
                item_index = 0

            items_loaded = await paginator.count_items(page)
            if items_loaded == 0:
                self._logger.info("%s No jobs found, skip", tag)
                break

            self._logger.info("%s Jobs fetched: %d", tag, items_loaded)
            page_base = (
                (query.options.page_offset + pages_advanced) * paginator.page_size
                if paginator.resets_index else 0
            )

            while item_index < items_loaded and metrics.processed < limit:
                item_tag = f"{tag}[{page_base + item_index + 1}]"
                try:
                    record = await extractor.extract(page, item_index, tag=item_tag)
                except ExtractionError as e:
                    metrics.failed += 1
                    self._logger.error("%s %s", item_tag, e)
                    self._events.emit(EventKind.ERROR, f"{item_tag}\t{e}")
                else:
                    if record is None:
                        metrics.skipped += 1
                    else:
                        metrics.processed += 1
                        self._events.emit(EventKind.DATA, record)
                        self._logger.info("%s Processed", item_tag)
                item_index += 1

                if metrics.processed < limit and item_index == items_loaded:
                    topped = await paginator.top_up(page, items_loaded)
                    if topped.success:
                        self._logger.info("%s Fetched more jobs: %d", tag, topped.count)
                        items_loaded = topped.count

            if metrics.processed >= limit:
                self._logger.info("%s Query limit reached!", tag)
                self._emit_metrics(metrics, tag)
                break

            self._logger.info("%s No more jobs to process in this page", tag)
            metrics.missed += paginator.missed(item_index, items_loaded)
            self._emit_metrics(metrics, tag)

            self._logger.info("%s Pagination requested [%d]", tag, pages_advanced + 1)
            result = await paginator.advance(page, items_loaded, tag=tag)
            if not result.success:
                self._logger.info("%s Couldn't find more jobs for the running query: %s", tag, result.error)
                break
            pages_advanced += 1

        return RunResult(exit=False, metrics=metrics)
