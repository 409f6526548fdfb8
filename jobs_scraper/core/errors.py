"""Exception hierarchy for the scraper.

Timeouts while polling the page are *not* exceptions: they are reported as
``LoadResult(success=False)`` and handled locally by the caller.
"""


class ScraperError(Exception):
    """Base class for all scraper errors."""


class QueryValidationError(ScraperError, ValueError):
    """A query or its options failed validation. Raised before any browser work."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors))


class ExtractionError(ScraperError):
    """Extraction of a single item failed. The session continues with the next item."""


class DetailsTimeoutError(ExtractionError):
    """The details panel never became ready for the selected item."""


class InitializationError(ScraperError):
    """The browser could not be launched."""


class InitializationTimeoutError(InitializationError):
    """A concurrent browser initialization did not complete in time."""
