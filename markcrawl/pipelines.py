"""Scrapy item pipelines: Markdown writer → index writer.

Scrapy 2.14+ compatible: open_spider, close_spider, and process_item do NOT
take a `spider` argument.  Spider identity is not needed at runtime.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from markcrawl.extractors.urlnorm import url_to_slug
from markcrawl.items import PageItem, PageRecord, page_item_to_record

if TYPE_CHECKING:
    from scrapy.crawler import Crawler

logger = logging.getLogger(__name__)


def _unique_slug(slug: str, seen: set[str]) -> str:
    """Append -2, -3, … until *slug* is not in *seen*."""
    candidate = slug
    counter = 2
    while candidate in seen:
        candidate = f"{slug}-{counter}"
        counter += 1
    seen.add(candidate)
    return candidate


def _write_json(path: Path, data: dict | list) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _record_json(record: PageRecord) -> dict[str, Any]:
    # raw_content duplicates the page; the Markdown is the payload
    return record.model_dump(exclude={"raw_content"})


# ---------------------------------------------------------------------------
# Pipeline 1: Markdown writer
# ---------------------------------------------------------------------------

class MarkdownWriterPipeline:
    """Write each page as pages/<slug>.md and pages/<slug>.json."""

    def __init__(self, pages_dir: Path) -> None:
        self.pages_dir = pages_dir
        self._seen_slugs: set[str] = set()
        self._count = 0

    @classmethod
    def from_crawler(cls, crawler: Crawler) -> MarkdownWriterPipeline:
        out_dir = Path(crawler.settings.get("OUTPUT_DIR", "./out"))
        return cls(pages_dir=out_dir / "pages")

    def open_spider(self) -> None:
        self.pages_dir.mkdir(parents=True, exist_ok=True)
        logger.info("MarkdownWriterPipeline open → %s", self.pages_dir)

    def process_item(self, item: Any) -> Any:
        if not isinstance(item, PageItem):
            return item

        record = page_item_to_record(item)
        slug = _unique_slug(url_to_slug(record.url), self._seen_slugs)

        _write_text(self.pages_dir / f"{slug}.md", record.markdown)
        _write_json(self.pages_dir / f"{slug}.json", _record_json(record))

        self._count += 1
        logger.info("Wrote page [%d]: %s → %s", self._count, record.url, slug)

        # Attach slug to item for downstream pipelines
        item["_slug"] = slug
        return item

    def close_spider(self) -> None:
        logger.info("MarkdownWriterPipeline: wrote %d pages", self._count)


# ---------------------------------------------------------------------------
# Pipeline 2: index writer
# ---------------------------------------------------------------------------

class IndexWriterPipeline:
    """Collect one summary per page and write index.json sorted by URL on close."""

    def __init__(self, index_path: Path) -> None:
        self.index_path = index_path
        self._entries: list[dict[str, Any]] = []

    @classmethod
    def from_crawler(cls, crawler: Crawler) -> IndexWriterPipeline:
        out_dir = Path(crawler.settings.get("OUTPUT_DIR", "./out"))
        return cls(index_path=out_dir / "index.json")

    def open_spider(self) -> None:
        self._entries = []

    def process_item(self, item: Any) -> Any:
        if not isinstance(item, PageItem):
            return item
        logger.debug("IndexWriterPipeline received: %s", item.get("url", ""))

        record = page_item_to_record(item)
        self._entries.append(
            {
                "slug": item.get("_slug") or url_to_slug(record.url),
                "url": record.url,
                "title": record.title,
                "description": record.metadata.get("description", ""),
                "word_count": len(record.markdown.split()),
                "screenshot_path": record.screenshot_path,
                "structured_data": sorted(record.structured_data),
            }
        )
        return item

    def close_spider(self) -> None:
        entries = sorted(self._entries, key=lambda e: e["url"])
        _write_json(self.index_path, entries)
        logger.info(
            "IndexWriterPipeline: wrote %d entries to %s",
            len(entries),
            self.index_path,
        )
