"""Domain errors raised by the search core and translated to HTTP by the routers."""


class SearchError(Exception):
    """Base class for search core failures"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SearchError):
    """Bad caller input. Surfaced immediately and never retried."""


class RateLimited(SearchError):
    """Upstream throttling. The caller may retry after `retry_after_seconds`."""

    def __init__(self, retry_after_seconds: int, message: str | None = None):
        super().__init__(message or f"Rate limited. Retry after {retry_after_seconds} seconds")
        self.retry_after_seconds = retry_after_seconds


class UpstreamError(SearchError):
    """Non-success response (or no response at all) from an upstream dependency."""

    def __init__(self, status_code: int | None, message: str):
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"Upstream error {self.status_code}: {self.message}"


class EmptyResultError(SearchError):
    """Neither full-text nor semantic retrieval produced any signal."""

    def __init__(self, message: str = "No full-text or semantic results to score"):
        super().__init__(message)
