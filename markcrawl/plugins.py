"""markcrawl.plugins - Extension point registry for structured extractors.

A structured extractor turns recurring markup (cards, listings, product
tiles …) into a list of field mappings stored under
``PageRecord.structured_data[<name>]``.

Usage::

    from markcrawl import register_extractor

    class ProductTiles:
        name = "products"
        def extract(self, soup, base_url):
            return [
                {"name": tile.get_text(strip=True)}
                for tile in soup.select(".product-tile")
            ]

    register_extractor(ProductTiles())

Extractors follow a ``runtime_checkable`` ``Protocol`` so ``isinstance()``
checks work without inheriting from a base class.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from markcrawl.extractors.urlnorm import resolve_url

if TYPE_CHECKING:
    from bs4 import BeautifulSoup

# ---------------------------------------------------------------------------
# Protocol definitions
# ---------------------------------------------------------------------------

@runtime_checkable
class StructuredExtractorPlugin(Protocol):
    """Site-specific rule producing a sequence of field mappings."""

    name: str

    def extract(self, soup: BeautifulSoup, base_url: str) -> list[dict[str, str]]:
        """Return one mapping per matched element, in document order."""
        ...


# ---------------------------------------------------------------------------
# Built-in extractors
# ---------------------------------------------------------------------------

class BlogPostCardExtractor:
    """Bootstrap-style blog cards: ``.card-body`` with a title link and teaser."""

    name = "blog_posts"

    def extract(self, soup: BeautifulSoup, base_url: str) -> list[dict[str, str]]:
        posts: list[dict[str, str]] = []
        for card in soup.select(".card-body"):
            link = card.select_one("h2.card-title a")
            desc = card.select_one("h4.card-text")
            href = str(link.get("href") or "") if link else ""
            posts.append({
                "title": link.get_text().strip() if link else "",
                "link": resolve_url(base_url, href) if href else "",
                "description": desc.get_text().strip() if desc else "",
            })
        return posts


# ---------------------------------------------------------------------------
# Module-level registry
# ---------------------------------------------------------------------------

_lock = threading.Lock()
_extractors: list[StructuredExtractorPlugin] = []


def register_extractor(plugin: StructuredExtractorPlugin) -> None:
    """Register a :class:`StructuredExtractorPlugin`.

    A plugin with the same ``name`` as an existing one replaces it.
    """
    if not isinstance(plugin, StructuredExtractorPlugin):
        raise TypeError(f"{plugin!r} does not implement StructuredExtractorPlugin")
    with _lock:
        _extractors[:] = [p for p in _extractors if p.name != plugin.name]
        _extractors.append(plugin)


def get_extractors() -> list[StructuredExtractorPlugin]:
    """Return all registered structured extractors in registration order."""
    with _lock:
        return list(_extractors)


def clear_plugins() -> None:
    """Remove all registered plugins. Primarily for use in tests."""
    with _lock:
        _extractors.clear()


def register_builtin_extractors() -> None:
    """(Re-)register the extractors shipped with markcrawl."""
    register_extractor(BlogPostCardExtractor())


register_builtin_extractors()
