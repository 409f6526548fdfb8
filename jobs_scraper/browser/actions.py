"""Reusable browser actions: bounded polling and best-effort page scripts.

Design rules:
  - Every wait is bounded. No loop here can outlive its timeout.
  - A plain timeout is a LoadResult failure, never an exception.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from jobs_scraper.core.schemas import LoadResult

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_MS = 50

# Runs a click on the first element matching the selector. Returns whether it existed.
CLICK_JS = """(selector) => {
    const el = document.querySelector(selector);
    if (el) {
        el.click();
        return true;
    }
    return false;
}"""

COUNT_JS = "(selector) => document.querySelectorAll(selector).length"


async def poll_until(
    predicate: Callable[[], Awaitable[Any]],
    *,
    timeout_ms: int,
    interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
    baseline: bool = False,
    error: str = "Timeout exceeded",
) -> LoadResult:
    """Await ``predicate`` until it returns a truthy value or the timeout elapses.

    Args:
        predicate: Async callable, usually an in-page query.
        timeout_ms: Total time spent sleeping between attempts before giving up.
        interval_ms: Fixed sleep between attempts.
        baseline: Sleep one interval before the first check. Used right after
            triggering a DOM mutation so a zero-latency check does not read
            the stale state.
        error: Message carried by the failure result.

    Returns:
        ``LoadResult(success=True)`` on the first truthy result, otherwise
        ``LoadResult(success=False, error=...)``. The last check happens once
        the accumulated wait reaches ``timeout_ms``.
    """
    interval_ms = max(interval_ms, 1)
    elapsed = 0

    if baseline:
        await asyncio.sleep(interval_ms / 1000)

    while True:
        if await predicate():
            return LoadResult(success=True)
        if elapsed >= timeout_ms:
            logger.debug("%s after %d ms", error, elapsed)
            return LoadResult(success=False, error=f"{error} ({timeout_ms} ms)")
        step = min(interval_ms, timeout_ms - elapsed)
        await asyncio.sleep(step / 1000)
        elapsed += step


async def count_elements(page: Any, selector: str) -> int:
    """Count elements matching ``selector`` in the page."""
    return int(await page.evaluate(COUNT_JS, selector))


async def click_if_present(page: Any, selector: str) -> bool:
    """Click the first element matching ``selector``. Returns False when absent."""
    return bool(await page.evaluate(CLICK_JS, selector))


async def evaluate_quietly(page: Any, script: str, arg: Any = None, *, tag: str = "") -> Any:
    """Run a best-effort page script (overlay dismissal and similar).

    Failures are logged at debug level and never propagate.
    """
    try:
        return await page.evaluate(script, arg)
    except Exception:
        logger.debug("%s Best-effort script failed", tag, exc_info=True)
        return None
