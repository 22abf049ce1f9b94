"""Scrapy Item and Pydantic record schema for extracted pages."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import scrapy
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# ---------------------------------------------------------------------------
# Scrapy Item
# ---------------------------------------------------------------------------

class PageItem(scrapy.Item):
    """Extracted page data passed through Scrapy pipelines."""

    url = scrapy.Field()
    markdown = scrapy.Field()
    metadata = scrapy.Field()
    structured_data = scrapy.Field()
    screenshot_path = scrapy.Field()
    raw_content = scrapy.Field()

    # Pipeline-internal: slug assigned by MarkdownWriterPipeline
    _slug = scrapy.Field()


# ---------------------------------------------------------------------------
# Pydantic record (one per distinct URL per run)
# ---------------------------------------------------------------------------

class PageRecord(BaseModel):
    """Canonical output record for one page.

    Frozen: a record becomes immutable once produced and is shared by every
    cache hit for its URL.  ``metadata`` and ``structured_data`` are exposed
    as read-only mappings (structured rows as tuples of read-only mappings);
    :meth:`model_dump` returns plain dicts and lists.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    markdown: str = ""
    metadata: dict[str, str] = Field(default_factory=lambda: {"title": ""})
    structured_data: dict[str, list[dict[str, str]]] = Field(default_factory=dict)
    screenshot_path: str | None = None
    raw_content: str = ""

    @field_validator("url", mode="before")
    @classmethod
    def strip_url(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("metadata")
    @classmethod
    def ensure_title(cls, v: dict[str, str]) -> Mapping[str, str]:
        if "title" not in v:
            v = {**v, "title": ""}
        return MappingProxyType(dict(v))

    @field_validator("structured_data")
    @classmethod
    def freeze_rows(cls, v: dict[str, list[dict[str, str]]]) -> Mapping[str, tuple]:
        return MappingProxyType({
            name: tuple(MappingProxyType(dict(row)) for row in rows)
            for name, rows in v.items()
        })

    @field_serializer("metadata")
    def dump_metadata(self, v: Mapping[str, str]) -> dict[str, str]:
        return dict(v)

    @field_serializer("structured_data")
    def dump_structured(self, v: Mapping[str, tuple]) -> dict[str, list[dict[str, str]]]:
        return {name: [dict(row) for row in rows] for name, rows in v.items()}

    @property
    def title(self) -> str:
        return self.metadata.get("title", "")


def record_to_item(record: PageRecord) -> PageItem:
    """Wrap a :class:`PageRecord` in a Scrapy item for the pipelines."""
    return PageItem(
        url=record.url,
        markdown=record.markdown,
        metadata=dict(record.metadata),
        structured_data={k: [dict(row) for row in v] for k, v in record.structured_data.items()},
        screenshot_path=record.screenshot_path,
        raw_content=record.raw_content,
    )


def page_item_to_record(item: PageItem) -> PageRecord:
    """Convert a Scrapy PageItem back to a validated PageRecord."""
    return PageRecord(
        url=item.get("url", ""),
        markdown=item.get("markdown", ""),
        metadata=item.get("metadata") or {},
        structured_data=item.get("structured_data") or {},
        screenshot_path=item.get("screenshot_path"),
        raw_content=item.get("raw_content", ""),
    )
