"""Low-signal paragraph filtering for serialized Markdown.

The filter is deliberately blunt: any blank-line-separated unit with five or
fewer whitespace-delimited tokens is dropped.  That includes short headings,
table rows grouped without blank lines, and code fences, so callers should
only enable it for prose-heavy pages.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

logger = logging.getLogger(__name__)

MIN_TOKENS = 6
_UNIT_SEPARATOR = "\n\n"


class FilterResult(NamedTuple):
    markdown: str
    kept: int
    dropped: int


def filter_markdown(markdown: str, min_tokens: int = MIN_TOKENS) -> FilterResult:
    """Filter *markdown* and report how many units were kept and dropped."""
    kept: list[str] = []
    dropped = 0
    for unit in markdown.split(_UNIT_SEPARATOR):
        unit = unit.strip()
        if len(unit.split()) >= min_tokens:
            kept.append(unit)
        elif unit:
            dropped += 1
    filtered = "".join(unit + _UNIT_SEPARATOR for unit in kept)
    return FilterResult(markdown=filtered, kept=len(kept), dropped=dropped)


def filter_low_signal(markdown: str) -> str:
    """Drop every paragraph-like unit of *markdown* with five or fewer words.

    Units are separated by blank lines; each retained unit is trimmed and
    followed by a blank line.
    """
    return filter_markdown(markdown).markdown
