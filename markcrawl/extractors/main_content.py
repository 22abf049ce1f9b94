"""Content isolation: choose between the raw document and a readability-cleaned one.

Readability failures never abort extraction.  When readability-lxml raises,
returns no text, or its output cannot be re-parsed, the tree parsed from the
original HTML is used instead.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from bs4 import BeautifulSoup
from readability import Document  # type: ignore[import-untyped]

from markcrawl.errors import ContentParseError, IsolationError

logger = logging.getLogger(__name__)

_PARSER = "lxml"


class IsolatedContent(NamedTuple):
    tree: BeautifulSoup
    html: str
    method: str  # "raw" | "readability"


def parse_html(html: str, url: str = "") -> BeautifulSoup:
    """Parse *html* into a fresh BeautifulSoup tree.

    Raises:
        ContentParseError: if the document cannot be parsed.
    """
    if not isinstance(html, str):
        raise ContentParseError(
            f"expected HTML text, got {type(html).__name__}", url=url,
        )
    try:
        return BeautifulSoup(html, _PARSER)
    except Exception as exc:
        raise ContentParseError(f"HTML parse failed for {url}: {exc}", url=url) from exc


def _run_readability(html: str, url: str) -> str:
    """Return readability-lxml's cleaned HTML for *html*.

    Raises:
        IsolationError: if readability fails or finds no readable text.
    """
    try:
        cleaned = Document(html, url=url or None).summary(html_partial=False)
    except Exception as exc:
        raise IsolationError(f"readability failed: {exc}") from exc
    if not cleaned or not cleaned.strip():
        raise IsolationError("readability returned an empty document")
    return cleaned


def isolate_content(raw_html: str, base_url: str, enabled: bool) -> IsolatedContent:
    """Select the tree the serializer will work on.

    Args:
        raw_html: The fetched or rendered HTML document.
        base_url: Page URL, passed to readability for link handling.
        enabled:  Whether to apply readability boilerplate removal.

    Returns:
        An :class:`IsolatedContent` whose ``tree`` is a new document the
        caller owns and whose ``html`` is the markup that tree was parsed
        from.

    Raises:
        ContentParseError: if *raw_html* itself cannot be parsed.
    """
    raw_tree = parse_html(raw_html, url=base_url)
    if not enabled:
        return IsolatedContent(tree=raw_tree, html=raw_html, method="raw")

    try:
        cleaned = _run_readability(raw_html, base_url)
        cleaned_tree = parse_html(cleaned, url=base_url)
        if not cleaned_tree.get_text().strip():
            raise IsolationError("readability output has no text")
    except (IsolationError, ContentParseError) as exc:
        logger.info("Readability failed for %s: %s. Using raw HTML.", base_url, exc)
        return IsolatedContent(tree=raw_tree, html=raw_html, method="raw")

    logger.debug("Readability applied for %s", base_url)
    return IsolatedContent(tree=cleaned_tree, html=cleaned, method="readability")
