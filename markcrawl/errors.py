"""Exception hierarchy for markcrawl.

Page-level failures (:class:`PageProcessingError` and subclasses) abort the
processing of a single URL only.  :class:`IsolationError` never escapes the
content isolator: it is always recovered by falling back to the raw tree.
"""

from __future__ import annotations


class MarkcrawlError(Exception):
    """Base class for all markcrawl errors."""


class PageProcessingError(MarkcrawlError):
    """A single page could not be turned into a record.

    Attributes:
        url -- the page URL that failed (empty if unknown)
    """

    def __init__(self, message: str, url: str = "") -> None:
        super().__init__(message)
        self.url = url


class ContentParseError(PageProcessingError):
    """The HTML document could not be parsed at all."""


class RenderError(PageProcessingError):
    """The rendering collaborator (Playwright) failed to render or screenshot."""


class FetchError(PageProcessingError):
    """Raised when a URL cannot be fetched.

    Attributes:
        url    -- the URL that failed
        status -- HTTP status code (0 if no response was received)
    """

    def __init__(self, message: str, url: str = "", status: int = 0) -> None:
        super().__init__(message, url=url)
        self.status = status


class IsolationError(MarkcrawlError):
    """Readability cleaning failed or produced unusable output."""
