"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"

ARTICLE_URL = "https://example.com/docs/intro"


def _read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def article_html() -> str:
    return _read_fixture("article.html")


@pytest.fixture
def cards_html() -> str:
    return _read_fixture("cards.html")


@pytest.fixture
def media_html() -> str:
    return _read_fixture("media.html")


@pytest.fixture
def article_config():
    from markcrawl.config import ExtractionConfig

    return ExtractionConfig(base_url=ARTICLE_URL)


@pytest.fixture(autouse=True)
def _builtin_plugins():
    """Reset the structured extractor registry around every test."""
    from markcrawl.plugins import clear_plugins, register_builtin_extractors

    clear_plugins()
    register_builtin_extractors()
    yield
    clear_plugins()
    register_builtin_extractors()


class FakeRenderer:
    """Rendering collaborator double recording every call."""

    def __init__(self, html: str = "", fail: bool = False) -> None:
        self.html = html
        self.fail = fail
        self.rendered: list[str] = []
        self.screenshots: list[tuple[str, str]] = []

    def render(self, url: str) -> str:
        from markcrawl.errors import RenderError

        self.rendered.append(url)
        if self.fail:
            raise RenderError("browser crashed", url=url)
        return self.html

    def screenshot(self, url: str, out_dir: str) -> str:
        from markcrawl.errors import RenderError

        self.screenshots.append((url, out_dir))
        if self.fail:
            raise RenderError("browser crashed", url=url)
        return f"{out_dir}/screenshot_1.png"


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer(html="<html><head><title>Rendered</title></head>"
                             "<body><p>rendered by the headless browser for tests</p></body></html>")


@pytest.fixture
def failing_renderer() -> FakeRenderer:
    return FakeRenderer(fail=True)
