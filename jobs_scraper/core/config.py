"""Configuration models, option merging and YAML loader for the jobs scraper."""

from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlparse

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from jobs_scraper.core.errors import QueryValidationError
from jobs_scraper.core.filters import (
    ExperienceLevelFilter,
    IndustryFilter,
    OnSiteOrRemoteFilter,
    RelevanceFilter,
    TimeFilter,
    TypeFilter,
)

DEFAULT_LOCATIONS: tuple[str, ...] = ("Worldwide",)

DEFAULT_BROWSER_ARGS: tuple[str, ...] = (
    "--enable-automation",
    "--start-maximized",
    "--window-size=1472,828",
    "--lang=en-GB",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-accelerated-2d-canvas",
    "--proxy-server='direct://'",
    "--proxy-bypass-list=*",
    "--allow-running-insecure-content",
    "--disable-web-security",
    "--disable-client-side-phishing-detection",
    "--disable-notifications",
    "--mute-audio",
)


def _as_list(v: Any) -> Any:
    """Accept a single filter value where a list is expected."""
    if v is None:
        return []
    if isinstance(v, str):
        return [v]
    return v


class QueryFilters(BaseModel):
    """Search filters. Values are LinkedIn URL codes (see ``core.filters``)."""

    model_config = ConfigDict(frozen=True)

    company_jobs_url: str | None = None
    relevance: RelevanceFilter | None = None
    time: TimeFilter | None = None
    type: list[TypeFilter] = Field(default_factory=list)
    experience: list[ExperienceLevelFilter] = Field(default_factory=list)
    on_site_or_remote: list[OnSiteOrRemoteFilter] = Field(default_factory=list)
    industry: list[IndustryFilter] = Field(default_factory=list)

    @field_validator("type", "experience", "on_site_or_remote", "industry", mode="before")
    @classmethod
    def single_value_to_list(cls, v: Any) -> Any:
        return _as_list(v)

    @field_validator("company_jobs_url")
    @classmethod
    def company_jobs_url_valid(cls, v: str | None) -> str | None:
        if v is None:
            return v
        parsed = urlparse(v)
        host = (parsed.hostname or "").lower()
        if parsed.scheme not in ("http", "https") or not (
            host == "linkedin.com" or host.endswith(".linkedin.com")
        ):
            msg = f"company_jobs_url must be a linkedin.com URL: {v!r}"
            raise ValueError(msg)
        if not parse_qs(parsed.query).get("f_C"):
            msg = "company_jobs_url must contain the 'f_C' query parameter"
            raise ValueError(msg)
        return v


class QueryOptions(BaseModel):
    """Options for one query. Unset fields fall through to lower-precedence layers."""

    model_config = ConfigDict(frozen=True)

    locations: list[str] = Field(default_factory=list)
    limit: int = Field(default=25, gt=0)
    page_offset: int = Field(default=0, ge=0)
    filters: QueryFilters = Field(default_factory=QueryFilters)
    description_fn: str | None = None
    optimize: bool = False
    apply_link: bool = False
    skip_promoted_jobs: bool = False
    skills: bool = False

    @field_validator("locations", mode="before")
    @classmethod
    def single_location_to_list(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("description_fn")
    @classmethod
    def description_fn_not_blank(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            msg = "description_fn must not be blank"
            raise ValueError(msg)
        return v


class Query(BaseModel):
    """A single search intent."""

    model_config = ConfigDict(frozen=True)

    text: str | None = None
    options: QueryOptions = Field(default_factory=QueryOptions)

    @property
    def label(self) -> str:
        return self.text or ""


class BrowserConfig(BaseModel):
    """Browser launch configuration."""

    headless: bool = True
    slow_mo_ms: int = Field(default=150, ge=0)
    args: list[str] = Field(default_factory=lambda: list(DEFAULT_BROWSER_ARGS))
    timeout_ms: int = Field(default=30000, ge=1000)
    cookies_path: str = "config/linkedin_cookies.json"
    user_agent: str | None = None


class TimeoutConfig(BaseModel):
    """Bounds for every wait performed while scraping (milliseconds)."""

    container_ms: int = Field(default=5000, ge=1)
    details_ms: int = Field(default=2000, ge=1)
    pagination_ms: int = Field(default=2000, ge=1)
    load_more_ms: int = Field(default=2000, ge=1)
    skills_ms: int = Field(default=2000, ge=1)
    apply_link_ms: int = Field(default=2000, ge=1)
    initialize_ms: int = Field(default=10000, ge=1)
    poll_interval_ms: int = Field(default=50, ge=1)


class ScraperSettings(BaseModel):
    """Top-level settings, optionally loaded from YAML."""

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    session_cookie: str | None = None
    options: QueryOptions = Field(default_factory=QueryOptions)
    queries: list[Query] = Field(default_factory=list)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ScraperSettings":
        """Load settings from a YAML file. At least one query is required."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        settings = cls.model_validate(raw)
        if not settings.queries:
            msg = "at least one query must be configured"
            raise ValueError(msg)
        return settings


# --- Option merging ---


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into ``base``. Dicts merge key-wise, everything else is replaced."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _explicit_fields(layer: QueryOptions | dict[str, Any] | None) -> dict[str, Any]:
    if layer is None:
        return {}
    if isinstance(layer, dict):
        layer = QueryOptions.model_validate(layer)
    return layer.model_dump(exclude_unset=True)


def merge_query_options(
    global_options: QueryOptions | dict[str, Any] | None,
    query_options: QueryOptions | dict[str, Any] | None,
    defaults: QueryOptions | None = None,
) -> QueryOptions:
    """Resolve options: defaults < global options < per-query options.

    Only explicitly set fields of the global and per-query layers override.
    Lists (locations, filter codes) are replaced, never concatenated.
    An empty location list resolves to ``["Worldwide"]``.
    """
    merged = (defaults or QueryOptions()).model_dump()
    merged = _deep_merge(merged, _explicit_fields(global_options))
    merged = _deep_merge(merged, _explicit_fields(query_options))
    if not merged.get("locations"):
        merged["locations"] = list(DEFAULT_LOCATIONS)
    return QueryOptions.model_validate(merged)


def _format_validation_error(prefix: str, err: ValidationError) -> list[str]:
    return [
        f"{prefix}{'.'.join(str(p) for p in e['loc']) or 'query'}: {e['msg']}"
        for e in err.errors()
    ]


def resolve_queries(
    queries: Query | dict[str, Any] | list[Query | dict[str, Any]],
    global_options: QueryOptions | dict[str, Any] | None = None,
) -> list[Query]:
    """Merge and validate every query before any browser work begins.

    Raises QueryValidationError listing every problem found.
    """
    if not isinstance(queries, list):
        queries = [queries]
    if not queries:
        raise QueryValidationError(["at least one query is required"])

    errors: list[str] = []
    try:
        global_layer = _explicit_fields(global_options)
    except ValidationError as e:
        raise QueryValidationError(_format_validation_error("options.", e)) from e

    resolved: list[Query] = []
    for i, raw in enumerate(queries):
        prefix = f"queries[{i}]."
        try:
            query = raw if isinstance(raw, Query) else Query.model_validate(raw)
            options = merge_query_options(global_layer, query.options)
            resolved.append(Query(text=query.text, options=options))
        except ValidationError as e:
            errors.extend(_format_validation_error(prefix, e))

    if errors:
        raise QueryValidationError(errors)
    return resolved
