"""Pagination controllers: reveal more result items.

Both controllers only report success or failure. A failure means "no more
items available" and ends the session normally.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from jobs_scraper.browser.actions import click_if_present, count_elements, poll_until
from jobs_scraper.core.config import TimeoutConfig
from jobs_scraper.core.schemas import LoadResult
from jobs_scraper.platforms.linkedin.searcher import RESULTS_PER_PAGE, next_page_url
from jobs_scraper.platforms.linkedin.selectors import LayoutProfile

SCROLL_AND_COUNT_JS = """(selector) => {
    window.scrollTo(0, document.body.scrollHeight);
    return document.querySelectorAll(selector).length;
}"""


class Paginator(ABC):
    """Common interface of the two pagination modes."""

    #: Whether the item index restarts at 0 after ``advance``.
    resets_index: bool = False

    def __init__(
        self,
        profile: LayoutProfile,
        timeouts: TimeoutConfig | None = None,
        page_size: int = RESULTS_PER_PAGE,
        logger: logging.Logger | None = None,
    ) -> None:
        self._profile = profile
        self._timeouts = timeouts or TimeoutConfig()
        self.page_size = page_size
        self._logger = logger or logging.getLogger(__name__)

    async def count_items(self, page: Any) -> int:
        """Number of result items currently in the DOM."""
        return await count_elements(page, self._profile.items)

    async def _wait_for_count_above(
        self, page: Any, seen: int, *, timeout_ms: int, scroll: bool = False,
    ) -> LoadResult:
        counted: list[int] = []

        async def _more_items() -> bool:
            if scroll:
                count = int(await page.evaluate(SCROLL_AND_COUNT_JS, self._profile.items))
            else:
                count = await count_elements(page, self._profile.items)
            counted.append(count)
            return count > seen

        result = await poll_until(
            _more_items,
            timeout_ms=timeout_ms,
            interval_ms=self._timeouts.poll_interval_ms,
            baseline=True,
            error="Timeout on loading more jobs",
        )
        if result.success:
            return LoadResult(success=True, count=counted[-1])
        return result

    @abstractmethod
    async def top_up(self, page: Any, seen: int) -> LoadResult:
        """Reveal more items on the current page without navigating."""

    @abstractmethod
    async def advance(self, page: Any, seen: int, *, tag: str = "") -> LoadResult:
        """Move to the next batch of items."""

    @abstractmethod
    def missed(self, item_index: int, items_loaded: int) -> int:
        """Estimate of items that were never reached on the current page (≥ 0)."""


class OffsetPaginator(Paginator):
    """Numbered pages: rewrite the ``start`` offset and navigate."""

    resets_index = True

    async def top_up(self, page: Any, seen: int) -> LoadResult:
        """Wait for lazily rendered cards when the page shows fewer than a full page."""
        if seen >= self.page_size:
            return LoadResult(success=False, error="Page already full", count=seen)
        return await self._wait_for_count_above(
            page, seen, timeout_ms=self._timeouts.load_more_ms,
        )

    async def advance(self, page: Any, seen: int, *, tag: str = "") -> LoadResult:
        url, offset = next_page_url(page.url, self.page_size)
        self._logger.info("%s Next offset: %d", tag, offset)
        self._logger.info("%s Opening %s", tag, url)
        await page.goto(url, wait_until="load")

        self._logger.info("%s Waiting for new jobs to load", tag)

        async def _any_item() -> bool:
            return await count_elements(page, self._profile.items) > 0

        result = await poll_until(
            _any_item,
            timeout_ms=self._timeouts.pagination_ms,
            interval_ms=self._timeouts.poll_interval_ms,
            error="Timeout on pagination",
        )
        if not result.success:
            return result
        return LoadResult(success=True, count=await self.count_items(page))

    def missed(self, item_index: int, items_loaded: int) -> int:
        return max(self.page_size - item_index, 0)


class InfiniteScrollPaginator(Paginator):
    """Single growing list: click "see more jobs", scroll, wait for new cards."""

    async def top_up(self, page: Any, seen: int) -> LoadResult:
        """Re-count without waiting: scrolling may already have appended cards."""
        count = await self.count_items(page)
        if count > seen:
            return LoadResult(success=True, count=count)
        return LoadResult(success=False, error="No new jobs on page", count=count)

    async def advance(self, page: Any, seen: int, *, tag: str = "") -> LoadResult:
        if self._profile.load_more_button:
            clicked = await click_if_present(page, self._profile.load_more_button)
            self._logger.debug("%s Load more button clicked: %s", tag, clicked)
        return await self._wait_for_count_above(
            page, seen, timeout_ms=self._timeouts.load_more_ms, scroll=True,
        )

    def missed(self, item_index: int, items_loaded: int) -> int:
        return max(items_loaded - item_index, 0)
