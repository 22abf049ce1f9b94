"""Page extraction orchestrator.

Sequences the pipeline for one page::

    cache check → content isolation → metadata → Markdown serialization →
    heuristic filtering → references → structured extraction →
    screenshot → record assembly → cache insertion

A :class:`PageExtractor` is shared by every worker of a run: its
:class:`~markcrawl.cache.ResultCache` guarantees each normalized URL is
transformed at most once.  Failures are page-scoped: they are logged and
``process`` returns ``None`` for that URL only.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Protocol

from markcrawl.cache import ResultCache
from markcrawl.errors import PageProcessingError
from markcrawl.extractors.heuristics import filter_markdown
from markcrawl.extractors.main_content import isolate_content
from markcrawl.extractors.markdown import append_references, serialize
from markcrawl.extractors.metadata import extract_metadata
from markcrawl.extractors.urlnorm import normalize_url
from markcrawl.items import PageRecord
from markcrawl.plugins import StructuredExtractorPlugin, get_extractors

if TYPE_CHECKING:
    from bs4 import BeautifulSoup

    from markcrawl.config import ExtractionConfig

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    """Headless rendering collaborator (see :mod:`markcrawl.rendering`)."""

    def render(self, url: str) -> str: ...

    def screenshot(self, url: str, out_dir: str) -> str: ...


class PageExtractor:
    """Turn fetched or rendered HTML into cached :class:`PageRecord` objects.

    Args:
        cache:      Shared result cache; a new one is created when omitted.
        renderer:   Rendering collaborator used for dynamic rendering and
                    screenshots.  Defaults to a Playwright renderer created
                    on first use.
        extractors: Structured extractors to run.  ``None`` means "whatever
                    is registered in :mod:`markcrawl.plugins` at call time".
    """

    def __init__(
        self,
        cache: ResultCache[PageRecord] | None = None,
        renderer: Renderer | None = None,
        extractors: Sequence[StructuredExtractorPlugin] | None = None,
    ) -> None:
        self.cache: ResultCache[PageRecord] = cache if cache is not None else ResultCache()
        self._renderer = renderer
        self._extractors = list(extractors) if extractors is not None else None

    @property
    def renderer(self) -> Renderer:
        if self._renderer is None:
            from markcrawl.rendering import PlaywrightRenderer

            self._renderer = PlaywrightRenderer()
        return self._renderer

    # ------------------------------------------------------------------
    # Public methods
    # ------------------------------------------------------------------

    def process(self, url: str, html: str, config: ExtractionConfig) -> PageRecord | None:
        """Return the record for *url*, building it from *html* on a cache miss.

        Returns ``None`` (after logging) when the page cannot be processed.
        """
        return self._get_or_build(url, lambda: html, config)

    def process_url(
        self,
        url: str,
        config: ExtractionConfig,
        fetch: Callable[[str], str],
        *,
        raise_errors: bool = False,
    ) -> PageRecord | None:
        """Load *url* and return its record, skipping the load on a cache hit.

        The page is rendered through :attr:`renderer` when
        ``config.enable_dynamic_rendering`` is set, otherwise *fetch* is
        called for the static HTML.  With *raise_errors* the page-level
        error is re-raised after logging instead of returning ``None``.
        """
        def _load() -> str:
            if config.enable_dynamic_rendering:
                return self.renderer.render(url)
            return fetch(url)

        return self._get_or_build(url, _load, config, raise_errors=raise_errors)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_or_build(
        self,
        url: str,
        load: Callable[[], str],
        config: ExtractionConfig,
        *,
        raise_errors: bool = False,
    ) -> PageRecord | None:
        key = normalize_url(url)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("Serving from cache: %s", url)
            return cached
        try:
            return self.cache.get_or_compute(
                key, lambda: self._build_record(url, key, load(), config),
            )
        except PageProcessingError as exc:
            logger.warning("Skipping %s: %s", url, exc)
            if raise_errors:
                raise
            return None

    def _build_record(
        self,
        url: str,
        key: str,
        html: str,
        config: ExtractionConfig,
    ) -> PageRecord:
        base_url = config.base_url
        isolated = isolate_content(html, base_url, config.enable_readability)
        metadata = extract_metadata(isolated.tree, base_url)

        # The isolated tree is ours: serialize() strips it in place.
        markdown, references = serialize(isolated.tree, base_url, metadata, config)
        if config.enable_heuristics:
            filtered = filter_markdown(markdown)
            logger.debug(
                "heuristics kept %d and dropped %d units for %s",
                filtered.kept, filtered.dropped, url,
            )
            markdown = filtered.markdown
        markdown = append_references(markdown, references)

        structured = self._extract_structured(isolated.tree, base_url)

        screenshot_path = None
        if config.enable_screenshots:
            screenshot_path = self.renderer.screenshot(url, config.screenshot_dir)

        return PageRecord(
            url=key,
            markdown=markdown,
            metadata=metadata,
            structured_data=structured,
            screenshot_path=screenshot_path,
            raw_content=isolated.html,
        )

    def _extract_structured(
        self, soup: BeautifulSoup, base_url: str,
    ) -> dict[str, list[dict[str, str]]]:
        plugins = self._extractors if self._extractors is not None else get_extractors()
        structured: dict[str, list[dict[str, str]]] = {}
        for plugin in plugins:
            try:
                rows = plugin.extract(soup, base_url)
                structured[plugin.name] = [
                    {str(k): str(v) for k, v in row.items()} for row in rows
                ]
            except Exception as exc:
                logger.warning("Structured extractor %s failed for %s: %s", plugin.name, base_url, exc)
        return structured
