"""Page spider: crawls allowed domains breadth-first and converts every HTML page.

Traversal:
    start_url → same-domain (plus extra domains) links, up to max_depth

Per page:
    PageExtractor.process() in a reactor worker thread, so readability,
    parsing and optional screenshots never block the crawl loop.  The shared
    ResultCache makes repeated visits of one normalized URL free.

JS rendering:
    With enable_dynamic_rendering every request is routed through
    scrapy-playwright (configured by the CLI).
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import scrapy
from scrapy.http import Request, Response, TextResponse
from scrapy.utils.defer import maybe_deferred_to_future
from twisted.internet import threads

from markcrawl.config import ExtractionConfig, parse_bool
from markcrawl.extraction import PageExtractor
from markcrawl.extractors.urlnorm import extract_domain, normalize_url
from markcrawl.items import PageItem, record_to_item

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

logger = logging.getLogger(__name__)

_SKIP_SCHEMES: tuple[str, ...] = ("mailto:", "javascript:", "tel:", "data:", "#")


class PageSpider(scrapy.Spider):
    """Crawl from ``start_url`` and emit one :class:`PageItem` per HTML page.

    Spider arguments (passed via CLI or process.crawl()):
        start_url                : Entry URL (required)
        max_depth                : Maximum link depth (default 2)
        extra_domains            : Comma-separated extra domains to follow
        enable_readability       : Apply readability content isolation
        enable_heuristics        : Drop low-signal paragraphs
        enable_dynamic_rendering : Render pages with Playwright
        enable_screenshots       : Screenshot each page
        screenshot_dir           : Where screenshots are written
    """

    name = "page_spider"

    def __init__(
        self,
        start_url: str,
        max_depth: int = 2,
        extra_domains: str | None = None,
        enable_readability: bool = False,
        enable_heuristics: bool = False,
        enable_dynamic_rendering: bool = False,
        enable_screenshots: bool = False,
        screenshot_dir: str = "./screenshots",
        extractor: PageExtractor | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.start_url = start_url.strip()
        self.max_depth = int(max_depth)

        self.config = ExtractionConfig(
            base_url=self.start_url,
            enable_readability=parse_bool(enable_readability),
            enable_heuristics=parse_bool(enable_heuristics),
            enable_dynamic_rendering=parse_bool(enable_dynamic_rendering),
            enable_screenshots=parse_bool(enable_screenshots),
            screenshot_dir=screenshot_dir,
        )

        extra: set[str] = set()
        if extra_domains:
            extra = {d.strip().lower() for d in extra_domains.split(",") if d.strip()}
        self._allowed: frozenset[str] = frozenset({extract_domain(self.start_url)} | extra)
        # Keep Scrapy's offsite filter in sync
        self.allowed_domains = sorted(self._allowed)

        self.extractor = extractor or PageExtractor()
        self.pages_processed = 0
        self.pages_failed = 0
        # process_response runs in reactor worker threads
        self._stats_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _make_request(self, url: str) -> Request:
        meta: dict[str, Any] = {}
        if self.config.enable_dynamic_rendering:
            meta["playwright"] = True
        return Request(url, callback=self.parse, meta=meta)

    async def start(self) -> AsyncIterator[Request]:  # type: ignore[override]
        yield self._make_request(self.start_url)

    def start_requests(self) -> Iterator[Request]:
        yield self._make_request(self.start_url)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    async def parse(self, response: Response, **kwargs: Any) -> AsyncIterator[PageItem | Request]:
        if not self._is_html(response):
            logger.debug("Skipping non-HTML response %s", response.url)
            return

        item = await maybe_deferred_to_future(
            threads.deferToThread(self.process_response, response),
        )
        if item is not None:
            yield item

        for request in self.follow_links(response):
            yield request

    @staticmethod
    def _is_html(response: Response) -> bool:
        if not isinstance(response, TextResponse):
            return False
        content_type = response.headers.get(b"Content-Type", b"text/html") or b"text/html"
        return b"html" in content_type.lower()

    def process_response(self, response: TextResponse) -> PageItem | None:
        """Run the extraction pipeline for one response (worker thread)."""
        url = response.url
        try:
            record = self.extractor.process(url, response.text, self.config.with_base_url(url))
        except Exception:
            logger.exception("Unexpected error processing %s", url)
            record = None
        with self._stats_lock:
            if record is None:
                self.pages_failed += 1
            else:
                self.pages_processed += 1
        if record is None:
            return None
        return record_to_item(record)

    def follow_links(self, response: TextResponse) -> Iterator[Request]:
        """Yield requests for in-scope links when below ``max_depth``."""
        depth = response.meta.get("depth", 0) if response.request is not None else 0
        if depth >= self.max_depth:
            return

        seen: set[str] = set()
        for href in response.css("a::attr(href)").getall():
            href = href.strip()
            if not href or href.lower().startswith(_SKIP_SCHEMES):
                continue
            absolute = response.urljoin(href)
            if not self._should_follow(absolute):
                continue
            key = normalize_url(absolute)
            if key in seen or key in self.extractor.cache:
                continue
            seen.add(key)
            yield self._make_request(absolute)

    def _should_follow(self, url: str) -> bool:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            return False
        return (parsed.hostname or "").lower() in self._allowed

    def closed(self, reason: str) -> None:
        logger.info(
            "PageSpider closed (%s): %d pages processed, %d failed",
            reason, self.pages_processed, self.pages_failed,
        )
