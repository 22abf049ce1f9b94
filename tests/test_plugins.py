"""Tests for markcrawl.plugins - structured extractor registry."""

from __future__ import annotations

import pytest
from bs4 import BeautifulSoup

from markcrawl.plugins import (
    BlogPostCardExtractor,
    StructuredExtractorPlugin,
    clear_plugins,
    get_extractors,
    register_extractor,
)


class _TitleExtractor:
    name = "titles"

    def extract(self, soup, base_url):
        return [{"title": t.get_text()} for t in soup.find_all("title")]


class TestBlogPostCardExtractor:
    def test_cards(self, cards_html):
        rows = BlogPostCardExtractor().extract(
            BeautifulSoup(cards_html, "lxml"), "https://example.com/blog/",
        )
        assert rows == [
            {
                "title": "First Post",
                "link": "https://example.com/posts/first",
                "description": "An introduction to the blog.",
            },
            {
                "title": "Second Post",
                "link": "https://cdn.example.com/posts/second",
                "description": "Follow-up thoughts.",
            },
            {"title": "", "link": "", "description": "A card without a title."},
        ]

    def test_no_cards(self):
        soup = BeautifulSoup("<p>plain</p>", "lxml")
        assert BlogPostCardExtractor().extract(soup, "https://e.test") == []

    def test_satisfies_protocol(self):
        assert isinstance(BlogPostCardExtractor(), StructuredExtractorPlugin)


class TestRegistry:
    def test_builtin_registered(self):
        assert [p.name for p in get_extractors()] == ["blog_posts"]

    def test_register_appends(self):
        register_extractor(_TitleExtractor())
        assert [p.name for p in get_extractors()] == ["blog_posts", "titles"]

    def test_same_name_replaces(self):
        first, second = _TitleExtractor(), _TitleExtractor()
        register_extractor(first)
        register_extractor(second)
        titles = [p for p in get_extractors() if p.name == "titles"]
        assert titles == [second]

    def test_rejects_non_plugin(self):
        with pytest.raises(TypeError):
            register_extractor(object())  # type: ignore[arg-type]

    def test_clear(self):
        clear_plugins()
        assert get_extractors() == []
