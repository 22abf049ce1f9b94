"""Tests for markcrawl.rendering - Playwright collaborator (fully mocked)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from markcrawl.errors import RenderError
from markcrawl.rendering import PlaywrightPool, PlaywrightRenderer, capture_screenshot, render_html


def _page(content: str = "<html><body>ok</body></html>") -> MagicMock:
    page = MagicMock()
    page.content.return_value = content
    return page


class TestRenderHtml:
    def test_returns_content_and_closes_page(self):
        page = _page()
        with patch("markcrawl.rendering._open_page", return_value=page) as mock_open:
            html = render_html("https://e.test", timeout=5)
        assert html == "<html><body>ok</body></html>"
        mock_open.assert_called_once_with("https://e.test", 5, None)
        page.close.assert_called_once()

    def test_missing_playwright(self):
        with patch("markcrawl.rendering._open_page", side_effect=ImportError("playwright")), \
             pytest.raises(RenderError, match="playwright"):
            render_html("https://e.test")

    def test_navigation_error(self):
        with patch("markcrawl.rendering._open_page", side_effect=TimeoutError("30s")), \
             pytest.raises(RenderError) as exc_info:
            render_html("https://e.test/slow")
        assert exc_info.value.url == "https://e.test/slow"

    def test_empty_page(self):
        with patch("markcrawl.rendering._open_page", return_value=_page("  ")), \
             pytest.raises(RenderError, match="empty"):
            render_html("https://e.test")


class TestCaptureScreenshot:
    def test_writes_into_out_dir(self, tmp_path):
        page = _page()
        out_dir = tmp_path / "shots"
        with patch("markcrawl.rendering._open_page", return_value=page):
            path = capture_screenshot("https://e.test", out_dir)

        assert out_dir.is_dir()
        assert Path(path).parent == out_dir
        assert Path(path).name.startswith("screenshot_")
        assert path.endswith(".png")
        page.screenshot.assert_called_once_with(path=path, full_page=True)

    def test_failure_raises_render_error(self, tmp_path):
        page = _page()
        page.screenshot.side_effect = RuntimeError("crashed")
        with patch("markcrawl.rendering._open_page", return_value=page), \
             pytest.raises(RenderError, match="screenshot failed"):
            capture_screenshot("https://e.test", tmp_path)
        page.close.assert_called_once()


class TestPlaywrightRenderer:
    def test_delegates(self):
        renderer = PlaywrightRenderer(timeout=7, user_agent="bot")
        with patch("markcrawl.rendering.render_html", return_value="<p>x</p>") as mock_render, \
             patch("markcrawl.rendering.capture_screenshot", return_value="/s.png") as mock_shot:
            assert renderer.render("https://e.test") == "<p>x</p>"
            assert renderer.screenshot("https://e.test", "/shots") == "/s.png"
        mock_render.assert_called_once_with("https://e.test", timeout=7, user_agent="bot")
        mock_shot.assert_called_once_with("https://e.test", "/shots", timeout=7, user_agent="bot")


class TestPlaywrightPool:
    def test_context_lru(self):
        pool = PlaywrightPool(max_contexts=1)
        state = pool._state()
        state.browser = MagicMock()
        state.browser.new_context.side_effect = lambda **kwargs: MagicMock()
        first = pool.get_context("ua-1")
        assert pool.get_context("ua-1") is first
        pool.get_context("ua-2")
        first.close.assert_called_once()
        assert list(state.contexts) == [("ua-2",)]

    def test_close_without_browser_is_noop(self):
        PlaywrightPool().close()
