"""Serialize a content tree to Markdown.

Output layout::

    # {title}

    > {description}

    **Keywords:** …

    **Author:** …

    **Canonical URL:** …

    ---

    <blocks in the fixed order of markcrawl.extractors.blocks>
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from .blocks import Block, classify_blocks, strip_non_content

if TYPE_CHECKING:
    from bs4 import BeautifulSoup

    from markcrawl.config import ExtractionConfig

logger = logging.getLogger(__name__)

# (metadata key, line template) in header order
_HEADER_FIELDS: tuple[tuple[str, str], ...] = (
    ("title", "# {}"),
    ("description", "> {}"),
    ("keywords", "**Keywords:** {}"),
    ("author", "**Author:** {}"),
    ("canonical_url", "**Canonical URL:** {}"),
)


def render_header(metadata: Mapping[str, str]) -> str:
    """Render the metadata header block, ending with the ``---`` separator."""
    parts: list[str] = []
    for key, template in _HEADER_FIELDS:
        value = metadata.get(key)
        if value:
            parts.append(template.format(value) + "\n\n")
    parts.append("---\n\n")
    return "".join(parts)


def render_blocks(blocks: Iterable[Block]) -> str:
    """Fold *blocks* into a single Markdown string."""
    return "".join(block.to_markdown() for block in blocks)


def serialize(
    soup: BeautifulSoup,
    base_url: str,
    metadata: Mapping[str, str],
    config: ExtractionConfig | None = None,
) -> tuple[str, list[str]]:
    """Convert *soup* to Markdown.

    Non-content elements (nav, footer, script, style, noscript) are removed
    from *soup* in place before classification.  The same tree serialized
    twice yields byte-identical output.

    Args:
        soup:     The working content tree (mutated).
        base_url: URL every link and media source is resolved against.
        metadata: Output of :func:`~markcrawl.extractors.metadata.extract_metadata`.
        config:   Run configuration; currently only informs logging.

    Returns:
        ``(markdown, references)``.  *references* is reserved for numbered
        citations and is empty for now.
    """
    strip_non_content(soup)
    blocks = classify_blocks(soup, base_url)
    references: list[str] = []

    markdown = render_header(metadata) + render_blocks(blocks)
    logger.debug(
        "serialized %d blocks (%d chars) for %s readability=%s",
        len(blocks), len(markdown), base_url,
        config.enable_readability if config else None,
    )
    return markdown, references


def append_references(markdown: str, references: list[str]) -> str:
    """Append a numbered ``**References:**`` section when *references* is non-empty."""
    if not references:
        return markdown
    lines = [f"[{i}] {ref}\n" for i, ref in enumerate(references, start=1)]
    return markdown + "\n\n**References:**\n" + "".join(lines)
