"""Tests for markcrawl.extraction - the per-page orchestrator."""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest

from markcrawl.config import ExtractionConfig
from markcrawl.errors import ContentParseError, RenderError
from markcrawl.extraction import PageExtractor
from markcrawl.items import PageRecord

SIMPLE_HTML = (
    "<html><head><title>T</title></head>"
    "<body><p>one two three four five six</p></body></html>"
)


def _config(**kwargs) -> ExtractionConfig:
    return ExtractionConfig(base_url="https://e.test", **kwargs)


class TestProcess:
    def test_end_to_end_markdown(self):
        record = PageExtractor().process("https://e.test", SIMPLE_HTML, _config())
        assert isinstance(record, PageRecord)
        assert record.markdown.startswith("# T\n\n---\n\n")
        assert "one two three four five six\n\n" in record.markdown

    def test_record_fields(self, article_html, article_config):
        record = PageExtractor().process(article_config.base_url, article_html, article_config)
        assert record.url == "https://example.com/docs/intro"
        assert record.title == "Getting Started with Markcrawl"
        assert record.metadata["author"] == "Jane Smith"
        assert record.screenshot_path is None
        assert record.raw_content == article_html
        assert record.structured_data == {"blog_posts": ()}

    def test_cached_record_cannot_be_mutated(self, cards_html):
        extractor = PageExtractor()
        cfg = ExtractionConfig(base_url="https://example.com/blog")
        record = extractor.process("https://example.com/blog", cards_html, cfg)

        with pytest.raises(TypeError):
            record.metadata["title"] = "changed"
        with pytest.raises(TypeError):
            record.structured_data["blog_posts"][0]["title"] = "changed"
        with pytest.raises(TypeError):
            record.structured_data["extra"] = ()

        again = extractor.process("https://example.com/blog", "<html></html>", cfg)
        assert again is record
        assert again.structured_data["blog_posts"][0]["title"] == "First Post"

    def test_record_url_is_normalized_key(self):
        record = PageExtractor().process(
            "HTTPS://E.test/a?utm_source=x#top", SIMPLE_HTML, _config(),
        )
        assert record.url == "https://e.test/a"

    def test_heuristics_applied(self):
        html = (
            "<html><head><title>T</title></head><body>"
            "<p>too short</p><p>this paragraph has at least six words</p></body></html>"
        )
        record = PageExtractor().process("https://e.test", html, _config(enable_heuristics=True))
        assert record.markdown == "this paragraph has at least six words\n\n"

    def test_readability_raw_content_is_cleaned_html(self, article_html, article_config):
        cfg = article_config.model_copy(update={"enable_readability": True})
        with patch(
            "markcrawl.extractors.main_content._run_readability",
            return_value="<html><body><p>cleaned text only here</p></body></html>",
        ):
            record = PageExtractor().process(cfg.base_url, article_html, cfg)
        assert record.raw_content == "<html><body><p>cleaned text only here</p></body></html>"
        assert "cleaned text only here\n\n" in record.markdown
        assert "Installation" not in record.markdown

    def test_cards_extracted(self, cards_html):
        record = PageExtractor().process(
            "https://example.com/blog/", cards_html,
            ExtractionConfig(base_url="https://example.com/blog/"),
        )
        posts = record.structured_data["blog_posts"]
        assert [p["title"] for p in posts] == ["First Post", "Second Post", ""]
        assert "## [First Post](https://example.com/posts/first)\n\n" in record.markdown


class TestCaching:
    def test_second_call_served_from_cache(self, caplog):
        extractor = PageExtractor()
        first = extractor.process("https://e.test/a", SIMPLE_HTML, _config())
        with caplog.at_level(logging.INFO, logger="markcrawl.extraction"):
            second = extractor.process("https://e.test/a#frag", "<p>different</p>", _config())
        assert second is first
        assert "Serving from cache" in caplog.text

    def test_process_url_skips_load_on_hit(self):
        extractor = PageExtractor()
        loads: list[str] = []

        def load(url: str) -> str:
            loads.append(url)
            return SIMPLE_HTML

        extractor.process_url("https://e.test/a", _config(), load)
        extractor.process_url("https://e.test/a", _config(), load)
        assert loads == ["https://e.test/a"]

    def test_shared_cache(self):
        from markcrawl.cache import ResultCache

        cache: ResultCache[PageRecord] = ResultCache()
        PageExtractor(cache=cache).process("https://e.test/a", SIMPLE_HTML, _config())
        assert "https://e.test/a" in cache


class TestFailures:
    def test_parse_failure_returns_none(self, caplog):
        extractor = PageExtractor()
        with patch(
            "markcrawl.extraction.isolate_content",
            side_effect=ContentParseError("bad html", url="https://e.test/x"),
        ), caplog.at_level(logging.WARNING, logger="markcrawl.extraction"):
            assert extractor.process("https://e.test/x", "<html>", _config()) is None
        assert "Skipping https://e.test/x" in caplog.text
        assert "https://e.test/x" not in extractor.cache

    def test_failure_does_not_affect_other_pages(self):
        extractor = PageExtractor()
        with patch(
            "markcrawl.extraction.isolate_content",
            side_effect=ContentParseError("bad html"),
        ):
            assert extractor.process("https://e.test/bad", "<html>", _config()) is None
        good = extractor.process("https://e.test/good", SIMPLE_HTML, _config())
        assert good is not None
        assert len(extractor.cache) == 1

    def test_raise_errors(self):
        extractor = PageExtractor(renderer=None)

        def load(url: str) -> str:
            raise RenderError("no browser", url=url)

        with pytest.raises(RenderError):
            extractor.process_url("https://e.test/a", _config(), load, raise_errors=True)

    def test_plugin_failure_logged_and_skipped(self, caplog):
        class Broken:
            name = "broken"

            def extract(self, soup, base_url):
                raise RuntimeError("selector exploded")

        extractor = PageExtractor(extractors=[Broken()])
        with caplog.at_level(logging.WARNING, logger="markcrawl.extraction"):
            record = extractor.process("https://e.test", SIMPLE_HTML, _config())
        assert record is not None
        assert record.structured_data == {}
        assert "Structured extractor broken failed" in caplog.text

    def test_plugin_values_coerced_to_str(self):
        class Numbers:
            name = "numbers"

            def extract(self, soup, base_url):
                return [{"count": 3}]

        record = PageExtractor(extractors=[Numbers()]).process("https://e.test", SIMPLE_HTML, _config())
        assert record.structured_data == {"numbers": ({"count": "3"},)}


class TestRendering:
    def test_dynamic_rendering_uses_renderer(self, fake_renderer):
        extractor = PageExtractor(renderer=fake_renderer)

        def load(url: str) -> str:
            raise AssertionError("static fetch must not be used")

        record = extractor.process_url("https://e.test/app", _config(enable_dynamic_rendering=True), load)
        assert fake_renderer.rendered == ["https://e.test/app"]
        assert record.title == "Rendered"

    def test_screenshot_path_recorded(self, fake_renderer):
        extractor = PageExtractor(renderer=fake_renderer)
        cfg = _config(enable_screenshots=True, screenshot_dir="/tmp/shots")
        record = extractor.process("https://e.test/a", SIMPLE_HTML, cfg)
        assert record.screenshot_path == "/tmp/shots/screenshot_1.png"
        assert fake_renderer.screenshots == [("https://e.test/a", "/tmp/shots")]

    def test_no_screenshot_when_disabled(self, fake_renderer):
        extractor = PageExtractor(renderer=fake_renderer)
        extractor.process("https://e.test/a", SIMPLE_HTML, _config())
        assert fake_renderer.screenshots == []

    def test_screenshot_failure_is_page_failure(self, failing_renderer):
        extractor = PageExtractor(renderer=failing_renderer)
        cfg = _config(enable_screenshots=True)
        assert extractor.process("https://e.test/a", SIMPLE_HTML, cfg) is None

    def test_render_failure_is_page_failure(self, failing_renderer):
        extractor = PageExtractor(renderer=failing_renderer)
        cfg = _config(enable_dynamic_rendering=True)
        assert extractor.process_url("https://e.test/a", cfg, lambda url: SIMPLE_HTML) is None
