"""Exception types raised by the extraction pipeline."""


class ExtractorError(Exception):
    """Base class for every error raised by this package."""


class RateLimitError(ExtractorError):
    """The search endpoint answered HTTP 429. Never retried."""

    def __init__(self, function: str, page: int) -> None:
        super().__init__(f"Rate limit reached (429) calling '{function}' on page {page}")
        self.function = function
        self.page = page


class SearchAPIError(ExtractorError):
    """The search endpoint returned a non-2xx status or an unusable body."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class StoreError(ExtractorError):
    """A record store call failed."""


class HistoryError(ExtractorError):
    """The history file exists but cannot be read as a fingerprint mapping."""
