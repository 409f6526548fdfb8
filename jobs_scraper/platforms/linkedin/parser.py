"""LinkedIn item extractor: turns the n-th result card into a JobRecord.

Design rules:
  - Selectors come from the session's LayoutProfile, never hard-coded here.
  - One failed item never stops the session: everything that can go wrong
    while reading the page surfaces as ExtractionError.
  - Optional fields (apply link, skills, criteria) never fail the item.
"""

import logging
import re
from typing import Any

from patchright.async_api import TimeoutError as PlaywrightTimeoutError
from pydantic import ValidationError

from jobs_scraper.browser.actions import click_if_present, poll_until
from jobs_scraper.core.config import Query, TimeoutConfig
from jobs_scraper.core.errors import DetailsTimeoutError, ExtractionError
from jobs_scraper.core.schemas import JobRecord, LoadResult
from jobs_scraper.platforms.linkedin.searcher import build_job_url
from jobs_scraper.platforms.linkedin.selectors import LayoutProfile

# --- In-page scripts ---

# Reads the card fields, scrolls the card into view and clicks it so the
# details panel starts loading.
READ_CARD_JS = """({ index, profile }) => {
    const item = document.querySelectorAll(profile.items)[index];
    if (!item) {
        throw new Error(`Item ${index} not found`);
    }
    const link = item.querySelector(profile.link);
    if (!link) {
        throw new Error(`Link not found for item ${index}`);
    }
    link.scrollIntoView();
    link.click();

    const text = (selector) => {
        const el = selector ? item.querySelector(selector) : null;
        return el ? el.innerText : "";
    };

    let jobId = "";
    for (const attr of profile.job_id_attrs) {
        const holder = item.hasAttribute(attr) ? item : item.querySelector(`[${attr}]`);
        const value = holder ? holder.getAttribute(attr) : null;
        if (value) {
            jobId = value.split(":").pop();
            break;
        }
    }

    const href = link.getAttribute("href") || "";
    const img = profile.company_img ? item.querySelector(profile.company_img) : null;
    const date = item.querySelector(profile.date);
    const promoted = profile.promoted_label
        ? Array.from(item.querySelectorAll("li")).some(e => e.innerText.trim() === profile.promoted_label)
        : false;

    return {
        jobId: jobId,
        link: href ? new URL(href, window.location.origin).href : "",
        title: text(profile.title),
        company: text(profile.company),
        companyImgLink: img ? img.getAttribute("src") : null,
        place: text(profile.place),
        date: date ? (date.getAttribute("datetime") || "") : "",
        isPromoted: promoted,
    };
}"""

DETAILS_READY_JS = """({ jobId, panel, description }) => {
    const details = document.querySelector(panel);
    const desc = document.querySelector(description);
    return !!(details && details.innerHTML.includes(jobId) &&
        desc && desc.innerText.trim().length > 0);
}"""

DESCRIPTION_JS = """(selector) => {
    const el = document.querySelector(selector);
    return [el.innerText, el.outerHTML];
}"""

DESCRIPTION_HTML_JS = "(selector) => document.querySelector(selector).outerHTML"

TEXT_JS = """(selector) => {
    const el = document.querySelector(selector);
    return el ? el.innerText : "";
}"""

ATTRIBUTE_JS = """({ selector, name }) => {
    const el = document.querySelector(selector);
    return el ? el.getAttribute(name) : null;
}"""

TEXT_LIST_JS = """(selector) => Array.from(document.querySelectorAll(selector))
    .map(e => e.textContent || "")"""

# Criteria blocks come in two shapes: an <h3> whose next sibling holds the
# value, or a container with an <h3> label and <span> values.
CRITERIA_JS = """(selector) => {
    const out = {};
    for (const node of document.querySelectorAll(selector)) {
        const header = node.tagName === "H3" ? node : node.querySelector("h3");
        if (!header) continue;
        const label = header.innerText.trim().toLowerCase();
        let value = "";
        if (header === node) {
            const sibling = node.nextElementSibling;
            value = sibling ? sibling.innerText.replace(/[\\s]{2,}/g, ", ").replace(/[\\n\\r]+/g, " ") : "";
        } else {
            value = Array.from(node.querySelectorAll("span"))
                .map(e => e.innerText.trim())
                .filter(e => e.length)
                .join(", ");
        }
        if (value.trim()) out[label] = value.trim();
    }
    return out;
}"""

CRITERIA_FIELDS: dict[str, str] = {
    "seniority level": "seniority_level",
    "job function": "job_function",
    "job functions": "job_function",
    "employment type": "employment_type",
    "industries": "industries",
    "industry": "industries",
}

_WHITESPACE_RE = re.compile(r"[\n\r\t ]+")
_SKILL_SPLIT_RE = re.compile(r",|\band\b")


def normalize_string(s: str | None) -> str:
    """Collapse whitespace runs into single spaces and strip."""
    if not s:
        return ""
    return _WHITESPACE_RE.sub(" ", s).strip()


def parse_skills(raw: list[str]) -> list[str] | None:
    """Split 'Python, SQL and Docker' style lists into individual skills."""
    skills = [
        normalize_string(part)
        for text in raw
        for part in _SKILL_SPLIT_RE.split(text)
    ]
    skills = [s for s in skills if s]
    return skills or None


def _clean_title(raw: str) -> str:
    """Logged-in cards repeat the title on two lines. Keep the second one."""
    lines = [line for line in raw.strip().split("\n") if line.strip()]
    if len(lines) > 1:
        return lines[1]
    return raw


class ItemExtractor:
    """Extracts one JobRecord per result card for a fixed layout profile."""

    def __init__(
        self,
        profile: LayoutProfile,
        query: Query,
        location: str,
        timeouts: TimeoutConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._profile = profile
        self._query = query
        self._location = location
        self._timeouts = timeouts or TimeoutConfig()
        self._logger = logger or logging.getLogger(__name__)

    async def extract(self, page: Any, index: int, *, tag: str = "") -> JobRecord | None:
        """Extract the item at ``index`` in the current result list.

        Returns None when the item is promoted and promoted items are skipped.

        Raises:
            DetailsTimeoutError: the details panel never became ready.
            ExtractionError: any other failure while reading the item.
        """
        options = self._query.options
        try:
            card = await page.evaluate(
                READ_CARD_JS, {"index": index, "profile": self._profile.to_js()},
            )
            if options.skip_promoted_jobs and card.get("isPromoted"):
                self._logger.info("%s Skipped because promoted", tag)
                return None

            job_id = str(card.get("jobId") or "")
            if not job_id:
                msg = f"Missing job id for item {index}"
                raise ExtractionError(msg)

            ready = await self._wait_for_details(page, job_id)
            if not ready.success:
                raise DetailsTimeoutError(ready.error)

            description, description_html = await self._read_description(page)
            fields: dict[str, Any] = {
                "apply_link": await self._read_apply_link(page, tag),
                "date_text": await self._read_text(page, self._profile.date_text),
                "company_link": await self._read_company_link(page),
                "insights": await self._read_insights(page),
                **await self._read_criteria(page),
            }
            if options.skills:
                fields["skills"] = await self._read_skills(page, tag)

            return JobRecord(
                query=self._query.label,
                location=self._location,
                job_id=job_id,
                job_index=index,
                link=card.get("link") or build_job_url(job_id),
                title=normalize_string(_clean_title(card.get("title") or "")),
                company=normalize_string(card.get("company")),
                company_img_link=card.get("companyImgLink") or None,
                place=normalize_string(card.get("place")),
                date=card.get("date") or "",
                description=description,
                description_html=description_html,
                **fields,
            )
        except ExtractionError:
            raise
        except ValidationError as e:
            msg = f"Incomplete job record: {e.error_count()} invalid field(s)"
            raise ExtractionError(msg) from e
        except Exception as e:
            raise ExtractionError(str(e) or type(e).__name__) from e

    # --- Private helpers ---

    async def _wait_for_details(self, page: Any, job_id: str) -> LoadResult:
        arg = {
            "jobId": job_id,
            "panel": self._profile.details_panel,
            "description": self._profile.description,
        }

        async def _ready() -> bool:
            return bool(await page.evaluate(DETAILS_READY_JS, arg))

        return await poll_until(
            _ready,
            timeout_ms=self._timeouts.details_ms,
            interval_ms=self._timeouts.poll_interval_ms,
            baseline=True,
            error="Timeout on loading job details",
        )

    async def _read_description(self, page: Any) -> tuple[str, str]:
        selector = self._profile.description
        description_fn = self._query.options.description_fn
        if description_fn:
            text = await page.evaluate(f"({description_fn})()")
            html = await page.evaluate(DESCRIPTION_HTML_JS, selector)
        else:
            text, html = await page.evaluate(DESCRIPTION_JS, selector)
        return str(text or "").strip(), str(html or "")

    async def _read_text(self, page: Any, selector: str | None) -> str:
        if not selector:
            return ""
        return normalize_string(await page.evaluate(TEXT_JS, selector))

    async def _read_company_link(self, page: Any) -> str | None:
        if not self._profile.company_link:
            return None
        href = await page.evaluate(
            ATTRIBUTE_JS, {"selector": self._profile.company_link, "name": "href"},
        )
        return href or None

    async def _read_insights(self, page: Any) -> list[str]:
        if not self._profile.insights:
            return []
        raw = await page.evaluate(TEXT_LIST_JS, self._profile.insights)
        return [s for s in (normalize_string(t) for t in raw) if s]

    async def _read_criteria(self, page: Any) -> dict[str, str]:
        if not self._profile.criteria:
            return {}
        raw: dict[str, str] = await page.evaluate(CRITERIA_JS, self._profile.criteria)
        fields: dict[str, str] = {}
        for label, value in raw.items():
            name = CRITERIA_FIELDS.get(label.strip().lower())
            if name is not None and name not in fields:
                fields[name] = normalize_string(value)
        return fields

    async def _read_skills(self, page: Any, tag: str) -> list[str] | None:
        selector = self._profile.skills
        if not selector:
            return None
        try:
            await page.wait_for_selector(selector, timeout=self._timeouts.skills_ms)
        except PlaywrightTimeoutError:
            self._logger.info("%s Timeout loading skills selector", tag)
            return None
        return parse_skills(await page.evaluate(TEXT_LIST_JS, selector))

    async def _read_apply_link(self, page: Any, tag: str) -> str | None:
        """Offsite anchor href, or the URL of the page opened by the apply button.

        Failures only omit the apply link.
        """
        try:
            if self._profile.apply_anchor:
                href = await page.evaluate(
                    ATTRIBUTE_JS, {"selector": self._profile.apply_anchor, "name": "href"},
                )
                if href:
                    return str(href)
            if self._query.options.apply_link and self._profile.apply_button:
                return await self._capture_apply_target(page, tag)
        except Exception:
            self._logger.warning("%s Failed to extract apply link", tag, exc_info=True)
        return None

    async def _capture_apply_target(self, page: Any, tag: str) -> str | None:
        context = page.context
        known = list(context.pages)
        current_url = page.url

        if not await click_if_present(page, self._profile.apply_button or ""):
            self._logger.debug("%s Apply button not found", tag)
            return None

        opened: list[Any] = []

        async def _new_target() -> bool:
            for candidate in context.pages:
                if candidate is page or candidate in known:
                    continue
                url = candidate.url
                if url and url != "about:blank" and url != current_url:
                    opened.append(candidate)
                    return True
            return False

        result = await poll_until(
            _new_target,
            timeout_ms=self._timeouts.apply_link_ms,
            interval_ms=100,
            error="Timeout waiting for apply page",
        )
        if not result.success:
            self._logger.debug("%s %s", tag, result.error)
            return None

        target = opened[0]
        url = str(target.url)
        await target.close()
        return url
