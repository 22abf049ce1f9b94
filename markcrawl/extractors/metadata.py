"""Metadata harvesting from a parsed content tree.

Collected keys:
    every ``<meta name=… content=…>`` / ``<meta property=… content=…>`` pair,
    ``title``, ``canonical_url`` and ``favicon_url``.
"""

from __future__ import annotations

import logging
from typing import Any

from bs4 import BeautifulSoup, Tag

from .urlnorm import resolve_url

logger = logging.getLogger(__name__)


def _safe_str(val: Any, default: str = "") -> str:
    """Safely convert a BeautifulSoup attribute value (str | list | None) to str."""
    if val is None:
        return default
    if isinstance(val, list):
        return " ".join(str(v) for v in val)
    return str(val)


def _link_href(soup: BeautifulSoup, selector: str) -> str:
    """Return the href of the first element matching *selector*, or ''."""
    link = soup.select_one(selector)
    if not isinstance(link, Tag):
        return ""
    return _safe_str(link.get("href")).strip()


def extract_metadata(soup: BeautifulSoup, base_url: str) -> dict[str, str]:
    """Extract page metadata from *soup* without mutating it.

    Meta tags are keyed by ``name`` when present, else by ``property`` (Open
    Graph and similar); a later tag overwrites an earlier one with the same
    key.  ``title`` is always present.  ``canonical_url`` and ``favicon_url``
    are resolved against *base_url* and only set when the link exists.
    """
    metadata: dict[str, str] = {}

    for tag in soup.find_all("meta"):
        if not isinstance(tag, Tag):
            continue
        content = _safe_str(tag.get("content"))
        if not content:
            continue
        key = _safe_str(tag.get("name")) or _safe_str(tag.get("property"))
        if key:
            metadata[key] = content

    title_tag = soup.find("title")
    metadata["title"] = title_tag.get_text().strip() if title_tag else ""

    canonical = _link_href(soup, "link[rel='canonical']")
    if canonical:
        metadata["canonical_url"] = resolve_url(base_url, canonical)

    favicon = _link_href(soup, "link[rel='icon']") or _link_href(
        soup, "link[rel='shortcut icon']",
    )
    if favicon:
        metadata["favicon_url"] = resolve_url(base_url, favicon)

    logger.debug("extracted %d metadata keys from %s", len(metadata), base_url)
    return metadata
