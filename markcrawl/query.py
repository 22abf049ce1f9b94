"""markcrawl.query - single-URL and batch fetch API.

Lets any Python script turn a page into Markdown without running the Scrapy
crawler.  Static pages are fetched with the stdlib (``urllib``); pages that
need JavaScript are rendered with Playwright.

Basic usage::

    from markcrawl.query import fetch

    record = fetch("https://example.com/docs/intro")
    print(record.metadata["title"])
    print(record.markdown)

With options::

    record = fetch(
        "https://example.com/docs/intro",
        enable_readability=True,
        enable_heuristics=True,
    )

Low-level access::

    from markcrawl.query import fetch_html, extract

    html = fetch_html("https://example.com/docs/intro")
    record = extract(html, url="https://example.com/docs/intro")
"""

from __future__ import annotations

import gzip
import http.client
import logging
import random
import time
import urllib.error
import urllib.request
import zlib
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any
from urllib.parse import urlparse

from markcrawl.config import ExtractionConfig
from markcrawl.errors import FetchError, PageProcessingError
from markcrawl.extraction import PageExtractor
from markcrawl.items import PageRecord
from markcrawl.rendering import PlaywrightRenderer

logger = logging.getLogger(__name__)

_DEFAULT_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

_RETRY_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})


def _decode_response_body(raw: bytes, headers: Any, url: str) -> str:
    encoding = str(headers.get("Content-Encoding", "") or "").lower().strip()
    try:
        if encoding == "gzip":
            raw = gzip.decompress(raw)
        elif encoding in ("deflate", "zlib"):
            raw = zlib.decompress(raw)
    except (OSError, zlib.error) as exc:
        raise FetchError(f"{encoding} decompression failed for {url}: {exc}", url=url) from exc

    charset = headers.get_content_charset("utf-8") or "utf-8"
    try:
        return raw.decode(charset, errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Low-level HTTP fetch
# ---------------------------------------------------------------------------

def fetch_html(
    url: str,
    *,
    timeout: int = 30,
    user_agent: str | None = None,
    max_retries: int = 3,
) -> str:
    """Fetch *url* and return the response body as a decoded string.

    Retries up to *max_retries* times with jittered exponential backoff on
    transient errors (429, 500, 502, 503, 504, and network-level failures).

    Raises:
        FetchError: On HTTP errors, connection failures, or invalid URLs.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise FetchError(f"Unsupported URL scheme: {parsed.scheme!r}", url=url)

    try:
        req = urllib.request.Request(
            url,
            headers={
                "User-Agent": user_agent or _DEFAULT_UA,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.9",
                "Accept-Encoding": "gzip, deflate",
            },
        )
    except ValueError as exc:
        raise FetchError(f"Invalid URL {url!r}: {exc}", url=url) from exc

    last_exc: FetchError | None = None
    for attempt in range(max_retries + 1):
        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                return _decode_response_body(resp.read(), resp.headers, url)

        except urllib.error.HTTPError as exc:
            last_exc = FetchError(
                f"HTTP {exc.code} fetching {url}: {exc.reason}", url=url, status=exc.code,
            )
            if exc.code not in _RETRY_CODES or attempt >= max_retries:
                raise last_exc from exc
            delay = (2 ** attempt) + random.uniform(0, 1)
            logger.debug(
                "HTTP %d for %s, retrying in %.1fs (attempt %d/%d)",
                exc.code, url, delay, attempt + 1, max_retries,
            )
            time.sleep(delay)

        except ValueError as exc:
            # http.client.InvalidURL and friends; retrying cannot help
            raise FetchError(f"Invalid URL {url!r}: {exc}", url=url) from exc

        except (urllib.error.URLError, OSError, http.client.HTTPException) as exc:
            reason = getattr(exc, "reason", exc)
            last_exc = FetchError(f"Network error fetching {url}: {reason}", url=url)
            if attempt >= max_retries:
                raise last_exc from exc
            delay = (2 ** attempt) + random.uniform(0, 1)
            logger.debug(
                "Network error for %s, retrying in %.1fs (attempt %d/%d): %s",
                url, delay, attempt + 1, max_retries, reason,
            )
            time.sleep(delay)

    raise last_exc or FetchError(f"All retries exhausted for {url}", url=url)


# ---------------------------------------------------------------------------
# Extraction (pure HTML → PageRecord, no network unless screenshots are on)
# ---------------------------------------------------------------------------

def _default_extractor(timeout: int, user_agent: str | None) -> PageExtractor:
    # Rendering and screenshots honour the same timeout and UA as static fetches
    return PageExtractor(renderer=PlaywrightRenderer(timeout=timeout, user_agent=user_agent))


def _build_config(url: str, config: ExtractionConfig | None, options: dict[str, Any]) -> ExtractionConfig:
    if config is None:
        return ExtractionConfig(base_url=url, **options)
    if options:
        return ExtractionConfig(**{**config.model_dump(), **options})
    return config


def extract(
    html: str,
    *,
    url: str,
    config: ExtractionConfig | None = None,
    extractor: PageExtractor | None = None,
    **options: Any,
) -> PageRecord | None:
    """Run the extraction pipeline on pre-fetched *html*.

    Args:
        html:      Raw HTML string of the page.
        url:       Original URL of the page.  Used as the base URL unless
                   *config* supplies one.
        config:    Optional run configuration.
        extractor: Optional shared :class:`PageExtractor` (and its cache).
        **options: ``ExtractionConfig`` fields overriding *config*, e.g.
                   ``enable_readability=True``.

    Returns:
        The :class:`PageRecord`, or ``None`` when the page could not be
        processed (the reason is logged).
    """
    cfg = _build_config(url, config, options)
    return (extractor or PageExtractor()).process(url, html, cfg)


# ---------------------------------------------------------------------------
# Main public API
# ---------------------------------------------------------------------------

def fetch(
    url: str,
    *,
    config: ExtractionConfig | None = None,
    extractor: PageExtractor | None = None,
    timeout: int = 30,
    user_agent: str | None = None,
    **options: Any,
) -> PageRecord:
    """Fetch *url* and return its :class:`~markcrawl.items.PageRecord`.

    The page is rendered with Playwright when ``enable_dynamic_rendering``
    is set, otherwise fetched statically.

    Raises:
        :class:`~markcrawl.errors.PageProcessingError`: if the page could not
            be fetched, rendered, or processed.
    """
    logger.info("fetch: %s", url)
    cfg = _build_config(url, config, options)
    extractor = extractor or _default_extractor(timeout, user_agent)

    def _load(target: str) -> str:
        return fetch_html(target, timeout=timeout, user_agent=user_agent)

    record = extractor.process_url(url, cfg, _load, raise_errors=True)
    if record is None:
        raise PageProcessingError(f"No record produced for {url}", url=url)
    return record


# ---------------------------------------------------------------------------
# Batch API
# ---------------------------------------------------------------------------

def fetch_batch(
    urls: list[str],
    *,
    config: ExtractionConfig | None = None,
    max_workers: int = 8,
    timeout: int = 30,
    user_agent: str | None = None,
    on_error: str = "skip",
    extractor: PageExtractor | None = None,
    **options: Any,
) -> list[PageRecord | None]:
    """Fetch multiple URLs concurrently and return their records.

    Uses a :class:`~concurrent.futures.ThreadPoolExecutor`; every worker
    shares one :class:`PageExtractor` so duplicate URLs are transformed once.
    Results are returned in the same order as *urls*.  Each page resolves
    relative links against its own URL.

    Args:
        on_error: ``"skip"`` (default) omits failed URLs; ``"include"``
                  keeps ``None`` in their slot; ``"raise"`` re-raises the
                  first failure.

    Raises:
        ValueError: For unknown *on_error* values.
    """
    if on_error not in ("skip", "raise", "include"):
        raise ValueError(f"on_error must be 'skip', 'raise', or 'include'; got {on_error!r}")

    extractor = extractor or _default_extractor(timeout, user_agent)
    results: list[PageRecord | None] = [None] * len(urls)

    def _fetch_one(idx: int, url: str) -> tuple[int, PageRecord | None]:
        page_config = config.with_base_url(url) if config is not None else None
        try:
            return idx, fetch(
                url,
                config=page_config,
                extractor=extractor,
                timeout=timeout,
                user_agent=user_agent,
                **options,
            )
        except Exception as exc:
            if on_error == "raise":
                raise
            logger.warning("fetch_batch: failed to fetch %s: %s", url, exc)
            return idx, None

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(_fetch_one, i, url) for i, url in enumerate(urls)]
        for future in as_completed(futures):
            idx, record = future.result()
            results[idx] = record

    if on_error == "include":
        return results
    return [r for r in results if r is not None]
