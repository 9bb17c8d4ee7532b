"""Custom exceptions for authorscout."""


class AuthorScoutError(Exception):
    """Base exception for all authorscout errors."""

    pass


class FetchError(AuthorScoutError):
    """Exception raised when a page cannot be fetched (timeout, network, bad status)."""

    def __init__(self, message: str, url: str | None = None, status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class RateLimitedError(FetchError):
    """Exception raised when the target site signals throttling (429)."""

    pass


class ParseError(AuthorScoutError):
    """Exception raised when expected page structure is absent."""

    pass


class BrowserInitializationError(AuthorScoutError):
    """Exception raised when the page source cannot be started."""

    pass


class StateError(AuthorScoutError):
    """Exception raised when a stored crawl state cannot be read or validated."""

    pass


class CrawlInProgressError(AuthorScoutError):
    """Exception raised when another crawl already holds the run lock."""

    pass
