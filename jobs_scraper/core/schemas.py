"""Core data models for the jobs scraper."""

from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobRecord(BaseModel):
    """A job posting extracted from the search results.

    Frozen. Construction fails when a required text field is empty, so an
    incomplete extraction can never be emitted.
    """

    model_config = ConfigDict(frozen=True)

    query: str
    location: str
    job_id: str
    job_index: int = Field(ge=0)
    link: str
    apply_link: str | None = None
    title: str = Field(min_length=1)
    company: str = ""
    company_link: str | None = None
    company_img_link: str | None = None
    place: str = Field(min_length=1)
    date: str = ""
    date_text: str = ""
    description: str = Field(min_length=1)
    description_html: str = Field(min_length=1)
    insights: list[str] = Field(default_factory=list)
    skills: list[str] | None = None
    seniority_level: str | None = None
    job_function: str | None = None
    employment_type: str | None = None
    industries: str | None = None

    @field_validator("link")
    @classmethod
    def link_is_absolute_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            msg = f"link is not an absolute URL: {v!r}"
            raise ValueError(msg)
        return v


class Metrics(BaseModel):
    """Counters for one (query, location) session. Mutated in place by the run strategy."""

    processed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    missed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)

    def snapshot(self) -> "Metrics":
        """Return an independent copy safe to hand to event listeners."""
        return self.model_copy()


class LoadResult(BaseModel):
    """Outcome of a bounded wait (polling, pagination, load more)."""

    model_config = ConfigDict(frozen=True)

    success: bool
    error: str = ""
    count: int = 0


class RunResult(BaseModel):
    """Terminal outcome of a run strategy.

    ``exit=True`` means the failure is systemic (auth wall, invalid session)
    and the orchestrator must abandon the remaining queries and locations.
    """

    model_config = ConfigDict(frozen=True)

    exit: bool = False
    metrics: Metrics | None = None
