"""Extraction sub-package: deterministic HTML to Markdown transcription."""

from .blocks import classify_blocks, strip_non_content
from .heuristics import filter_low_signal, filter_markdown
from .main_content import IsolatedContent, isolate_content, parse_html
from .markdown import append_references, serialize
from .metadata import extract_metadata
from .urlnorm import normalize_url, parse_srcset, resolve_url, url_to_slug

__all__ = [
    "IsolatedContent",
    "append_references",
    "classify_blocks",
    "extract_metadata",
    "filter_low_signal",
    "filter_markdown",
    "isolate_content",
    "normalize_url",
    "parse_html",
    "parse_srcset",
    "resolve_url",
    "serialize",
    "strip_non_content",
    "url_to_slug",
]
