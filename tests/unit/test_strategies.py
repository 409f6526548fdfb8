"""Tests for the authenticated and anonymous run strategies."""

from typing import Any

import pytest

from jobs_scraper.core.config import Query, QueryOptions, TimeoutConfig
from jobs_scraper.core.events import EventBus, EventKind
from jobs_scraper.core.schemas import JobRecord, Metrics
from jobs_scraper.platforms.linkedin.searcher import JOBS_SEARCH_URL, current_offset
from jobs_scraper.platforms.linkedin.selectors import ANONYMOUS_PROFILES, AUTHENTICATED_PROFILES
from jobs_scraper.platforms.linkedin.strategies import (
    AnonymousStrategy,
    AuthenticatedStrategy,
    needs_authentication,
    select_strategy,
)
from tests.conftest import FakeJob, FakePage, make_jobs

SEARCH_URL = f"{JOBS_SEARCH_URL}?keywords=python&location=Europe&start=0"
AUTH_CONTAINER = AUTHENTICATED_PROFILES[0].container
ANON_CONTAINER = ANONYMOUS_PROFILES[0].container


class Recorder:
    """Collects every event emitted on a bus."""

    def __init__(self, bus: EventBus) -> None:
        self.events: list[tuple[EventKind, tuple[Any, ...]]] = []
        for kind in EventKind:
            bus.subscribe(kind, lambda *payload, k=kind: self.events.append((k, payload)))

    def of(self, kind: EventKind) -> list[tuple[Any, ...]]:
        return [payload for k, payload in self.events if k is kind]

    @property
    def records(self) -> list[JobRecord]:
        return [payload[0] for payload in self.of(EventKind.DATA)]

    @property
    def last_metrics(self) -> Metrics:
        return self.of(EventKind.METRICS)[-1][0]


def _query(text: str = "python", **options: object) -> Query:
    return Query(text=text, options=QueryOptions(**options))


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def recorder(bus: EventBus) -> Recorder:
    return Recorder(bus)


# ---------------------------------------------------------------------------
# Strategy selection
# ---------------------------------------------------------------------------


class TestSelectStrategy:
    def test_cookie_selects_authenticated(self, bus: EventBus) -> None:
        strategy = select_strategy(bus, "li-at-value")
        assert isinstance(strategy, AuthenticatedStrategy)
        assert strategy.name == "authenticated"

    @pytest.mark.parametrize("cookie", [None, ""])
    def test_no_cookie_selects_anonymous(self, bus: EventBus, cookie: str | None) -> None:
        strategy = select_strategy(bus, cookie)
        assert isinstance(strategy, AnonymousStrategy)
        assert strategy.name == "anonymous"

    def test_needs_authentication(self) -> None:
        assert needs_authentication("https://www.linkedin.com/authwall?trk=x")
        assert not needs_authentication(SEARCH_URL)


# ---------------------------------------------------------------------------
# AuthenticatedStrategy
# ---------------------------------------------------------------------------


class TestAuthenticatedStrategy:
    def _strategy(self, bus: EventBus, timeouts: TimeoutConfig) -> AuthenticatedStrategy:
        return AuthenticatedStrategy(bus, "li-at-value", timeouts)

    async def test_limit_stops_session(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        """5 loaded items, limit 3, no further pages: exactly 3 records."""
        page = FakePage(make_jobs(5), containers={AUTH_CONTAINER})
        result = await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query("", limit=3), "Europe")

        assert result.exit is False
        assert result.metrics is not None
        assert result.metrics.processed == 3
        assert [r.job_id for r in recorder.records] == ["job0", "job1", "job2"]
        assert recorder.last_metrics.processed == 3

    async def test_session_cookie_injected(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        page = FakePage(make_jobs(1), containers={AUTH_CONTAINER})
        await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query(limit=1), "Europe")

        cookies = await page.context.cookies()
        assert cookies == [{
            "name": "li_at", "value": "li-at-value", "domain": ".www.linkedin.com", "path": "/",
        }]
        assert page.gotos[0] == "https://www.linkedin.com"

    async def test_invalid_cookie_ends_run(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        page = FakePage(make_jobs(5), containers={AUTH_CONTAINER}, accept_cookies=False)
        result = await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query(), "Europe")

        assert result.exit is True
        assert len(recorder.of(EventKind.INVALID_SESSION)) == 1
        assert recorder.records == []

    async def test_authwall_ends_run(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        page = FakePage(make_jobs(5), containers={AUTH_CONTAINER}, authwall=True)
        result = await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query(), "Europe")

        assert result.exit is True
        assert len(recorder.of(EventKind.INVALID_SESSION)) == 1
        assert recorder.records == []

    async def test_missing_container_skips_session(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        page = FakePage(make_jobs(5), containers=set())
        result = await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query(), "Europe")

        assert result.exit is False
        assert result.metrics is None
        assert recorder.records == []

    async def test_second_layout_profile_used(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        page = FakePage(make_jobs(2), containers={AUTHENTICATED_PROFILES[1].container})
        result = await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query(limit=2), "Europe")

        assert result.metrics is not None
        assert result.metrics.processed == 2

    async def test_page_offset_applied(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        page = FakePage(make_jobs(60), containers={AUTH_CONTAINER})
        await self._strategy(bus, fast_timeouts).run(
            page, SEARCH_URL, _query(limit=2, page_offset=2), "Europe",
        )

        assert current_offset(page.gotos[1]) == 50
        assert [r.job_id for r in recorder.records] == ["job50", "job51"]

    async def test_paginates_across_pages(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        page = FakePage(make_jobs(30), containers={AUTH_CONTAINER})
        result = await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query(limit=100), "Europe")

        assert result.metrics is not None
        assert result.metrics.processed == 30
        # Second page shows 5 of 25 slots.
        assert result.metrics.missed == 20
        assert len(recorder.records) == 30
        assert recorder.records[25].job_index == 0
        assert [current_offset(u) for u in page.gotos[1:]] == [0, 25, 50]

    async def test_details_timeout_skips_only_that_item(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        jobs = make_jobs(4)
        jobs[1].details_ready = False
        page = FakePage(jobs, containers={AUTH_CONTAINER})

        result = await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query(limit=10), "Europe")

        assert [r.job_id for r in recorder.records] == ["job0", "job2", "job3"]
        assert result.metrics is not None
        assert result.metrics.failed == 1
        errors = recorder.of(EventKind.ERROR)
        assert len(errors) == 1
        assert errors[0][0].startswith("[python][Europe][2]\t")

    async def test_promoted_items_skipped(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        jobs = make_jobs(3)
        jobs[0].promoted = True
        page = FakePage(jobs, containers={AUTH_CONTAINER})

        result = await self._strategy(bus, fast_timeouts).run(
            page, SEARCH_URL, _query(limit=10, skip_promoted_jobs=True), "Europe",
        )

        assert [r.job_id for r in recorder.records] == ["job1", "job2"]
        assert result.metrics is not None
        assert result.metrics.skipped == 1

    async def test_session_lost_mid_run_is_reported(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        page = FakePage(make_jobs(30), containers={AUTH_CONTAINER}, expire_session_on_advance=True)
        result = await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query(limit=100), "Europe")

        assert result.exit is False
        assert len(recorder.of(EventKind.INVALID_SESSION)) >= 1
        assert len(recorder.records) == 30

    async def test_empty_results(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        page = FakePage([], containers={AUTH_CONTAINER})
        result = await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query(), "Europe")

        assert result.exit is False
        assert result.metrics is not None
        assert result.metrics.processed == 0
        assert recorder.records == []


# ---------------------------------------------------------------------------
# AnonymousStrategy
# ---------------------------------------------------------------------------


class TestAnonymousStrategy:
    def _strategy(self, bus: EventBus, timeouts: TimeoutConfig) -> AnonymousStrategy:
        return AnonymousStrategy(bus, timeouts)

    async def test_limit_stops_session(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        page = FakePage(make_jobs(5), mode="scroll", containers={ANON_CONTAINER})
        result = await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query("", limit=3), "Europe")

        assert result.exit is False
        assert result.metrics is not None
        assert result.metrics.processed == 3
        assert len(recorder.records) == 3

    async def test_authwall_forces_exit(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        page = FakePage(make_jobs(5), mode="scroll", containers={ANON_CONTAINER}, authwall=True)
        result = await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query(), "Europe")

        assert result.exit is True
        assert recorder.records == []
        assert recorder.of(EventKind.INVALID_SESSION) == []

    async def test_no_session_cookie_needed(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        page = FakePage(make_jobs(2), mode="scroll", containers={ANON_CONTAINER})
        await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query(limit=2), "Europe")

        assert await page.context.cookies() == []
        assert page.gotos == [SEARCH_URL]

    async def test_infinite_scroll_continues_index(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        page = FakePage(make_jobs(7), mode="scroll", batch=3, containers={ANON_CONTAINER})
        result = await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query(limit=50), "Europe")

        assert [r.job_index for r in recorder.records] == list(range(7))
        assert result.metrics is not None
        assert result.metrics.processed == 7
        assert result.metrics.missed == 0
        # One metrics snapshot per exhausted batch.
        assert len(recorder.of(EventKind.METRICS)) == 3

    async def test_failed_item_does_not_stop_session(
        self, bus: EventBus, recorder: Recorder, fast_timeouts: TimeoutConfig,
    ) -> None:
        jobs = [FakeJob("a"), FakeJob("b", broken=True), FakeJob("c")]
        page = FakePage(jobs, mode="scroll", containers={ANON_CONTAINER})

        result = await self._strategy(bus, fast_timeouts).run(page, SEARCH_URL, _query(limit=10), "Europe")

        assert [r.job_id for r in recorder.records] == ["a", "c"]
        assert result.metrics is not None
        assert result.metrics.failed == 1
        assert len(recorder.of(EventKind.ERROR)) == 1
