"""markcrawl - turn any web page into clean, deterministic Markdown.

Quick single-URL usage::

    from markcrawl import fetch

    record = fetch("https://example.com/docs/intro")
    print(record.title)
    print(record.markdown)

Pre-fetched HTML::

    from markcrawl import extract

    record = extract(html, url="https://example.com/docs/intro", enable_heuristics=True)

Plugin extension points::

    from markcrawl import register_extractor

    class PriceExtractor:
        name = "prices"
        def extract(self, soup, base_url):
            return [{"price": el.get_text(strip=True)} for el in soup.select(".price")]

    register_extractor(PriceExtractor())
"""

from markcrawl.cache import ResultCache
from markcrawl.config import ExtractionConfig
from markcrawl.errors import (
    ContentParseError,
    FetchError,
    MarkcrawlError,
    PageProcessingError,
    RenderError,
)
from markcrawl.extraction import PageExtractor
from markcrawl.items import PageRecord
from markcrawl.plugins import register_extractor
from markcrawl.query import extract, fetch, fetch_batch, fetch_html

__version__ = "0.1.0"
__all__ = [
    "ContentParseError",
    "ExtractionConfig",
    "FetchError",
    "MarkcrawlError",
    "PageExtractor",
    "PageProcessingError",
    "PageRecord",
    "RenderError",
    "ResultCache",
    "extract",
    "fetch",
    "fetch_batch",
    "fetch_html",
    "register_extractor",
]
