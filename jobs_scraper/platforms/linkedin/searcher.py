"""LinkedIn search URL builder and offset helpers.

Pure functions, no browser dependency.
"""

import logging
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from jobs_scraper.core.config import QueryOptions

logger = logging.getLogger(__name__)

HOME_URL = "https://www.linkedin.com"
JOBS_SEARCH_URL = "https://www.linkedin.com/jobs/search"

RESULTS_PER_PAGE = 25


def build_search_url(
    text: str,
    location: str,
    options: QueryOptions,
    *,
    authenticated: bool = False,
) -> str:
    """Build a LinkedIn jobs search URL.

    Args:
        text: Search keywords. Omitted when empty.
        location: Location name. Omitted when empty.
        options: Resolved query options (filters are read from here).
        authenticated: The on-site/remote filter only works for logged-in
            sessions and is dropped otherwise.

    Returns:
        Fully qualified search URL, always starting at offset 0.
    """
    params: list[tuple[str, str]] = []

    if text:
        params.append(("keywords", text))
    if location:
        params.append(("location", location))

    filters = options.filters
    if filters.company_jobs_url:
        company_ids = get_query_params(filters.company_jobs_url).get("f_C", "")
        params.append(("f_C", company_ids))
    if filters.relevance is not None:
        params.append(("sortBy", filters.relevance.value))
    if filters.time:
        params.append(("f_TPR", filters.time.value))
    if filters.type:
        params.append(("f_JT", ",".join(f.value for f in filters.type)))
    if filters.experience:
        params.append(("f_E", ",".join(f.value for f in filters.experience)))
    if filters.industry:
        params.append(("f_I", ",".join(f.value for f in filters.industry)))
    if filters.on_site_or_remote:
        if authenticated:
            params.append(("f_WT", ",".join(f.value for f in filters.on_site_or_remote)))
        else:
            logger.warning("On-site/remote filter requires an authenticated session, ignored")

    params.append(("start", "0"))
    return f"{JOBS_SEARCH_URL}?{urlencode(params)}"


def get_query_params(url: str) -> dict[str, str]:
    """Return the query parameters of ``url`` (first value per key)."""
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items() if v}


def current_offset(url: str) -> int:
    """Read the ``start`` offset from a search URL (0 when missing or malformed)."""
    raw = get_query_params(url).get("start", "0")
    try:
        return max(int(raw), 0)
    except ValueError:
        return 0


def with_offset(url: str, offset: int) -> str:
    """Return ``url`` with its ``start`` parameter replaced by ``offset``."""
    parsed = urlparse(url)
    pairs = [(k, v) for k, vs in parse_qs(parsed.query).items() for v in vs if k != "start"]
    pairs.append(("start", str(offset)))
    return urlunparse(parsed._replace(query=urlencode(pairs)))


def next_page_url(url: str, page_size: int = RESULTS_PER_PAGE) -> tuple[str, int]:
    """Compute the URL of the next result page. Returns ``(url, new_offset)``."""
    offset = current_offset(url) + page_size
    return with_offset(url, offset), offset


def build_job_url(job_id: str) -> str:
    """Build a canonical LinkedIn job detail URL."""
    return f"https://www.linkedin.com/jobs/view/{job_id}/"
