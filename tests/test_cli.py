"""Tests for the command-line entry point."""

from __future__ import annotations

import http.client
from unittest.mock import patch

import pytest

from markcrawl.__main__ import _build_parser, _configure_playwright, _validate_args, main
from markcrawl.errors import FetchError
from markcrawl.items import PageRecord


class TestParser:
    def test_defaults(self):
        args = _build_parser().parse_args(["--url", "https://e.test"])
        assert args.out == "./out"
        assert args.max_depth == 2
        assert args.concurrency == 8
        assert not args.readability
        assert not args.heuristics
        assert not args.render_js
        assert not args.screenshots
        assert not args.single
        assert args.log_level == "INFO"

    def test_url_required(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args([])

    @pytest.mark.parametrize(
        ("argv", "fragment"),
        [
            (["--url", "not-a-url"], "--url"),
            (["--url", "https://e.test", "--max-depth", "-1"], "--max-depth"),
            (["--url", "https://e.test", "--concurrency", "0"], "--concurrency"),
        ],
    )
    def test_validation_errors(self, argv, fragment):
        error = _validate_args(_build_parser().parse_args(argv))
        assert error is not None
        assert fragment in error

    def test_valid_args(self):
        assert _validate_args(_build_parser().parse_args(["--url", "https://e.test"])) is None


class TestMain:
    def test_invalid_url_exit_code(self, capsys):
        assert main(["--url", "ftp://e.test"]) == 1
        assert "ERROR" in capsys.readouterr().err

    def test_single_prints_markdown(self, capsys, tmp_path):
        record = PageRecord(url="https://e.test", markdown="# T\n\n---\n\nbody\n\n")
        with patch("markcrawl.query.fetch", return_value=record) as mock_fetch:
            code = main([
                "--url", "https://e.test", "--single", "--heuristics",
                "--out", str(tmp_path),
            ])
        assert code == 0
        assert capsys.readouterr().out == "# T\n\n---\n\nbody\n\n"
        config = mock_fetch.call_args.kwargs["config"]
        assert config.enable_heuristics is True
        assert config.screenshot_dir == str(tmp_path.resolve() / "screenshots")

    def test_single_failure_exit_code(self, capsys):
        with patch(
            "markcrawl.query.fetch",
            side_effect=FetchError("HTTP 404", url="https://e.test", status=404),
        ):
            assert main(["--url", "https://e.test", "--single"]) == 1
        assert "HTTP 404" in capsys.readouterr().err

    def test_single_invalid_request_url_exit_code(self, capsys):
        with patch(
            "urllib.request.urlopen",
            side_effect=http.client.InvalidURL("URL can't contain control characters"),
        ):
            assert main(["--url", "https://e.test/a b", "--single"]) == 1
        assert "ERROR" in capsys.readouterr().err


class TestConfigurePlaywright:
    def test_sets_handlers_when_available(self):
        from scrapy.settings import Settings

        settings = Settings()
        with patch("markcrawl.__main__._check_playwright_available", return_value=True):
            assert _configure_playwright(settings) is True
        assert settings.getdict("DOWNLOAD_HANDLERS")["https"].startswith("scrapy_playwright")
        assert "AsyncioSelectorReactor" in settings.get("TWISTED_REACTOR")

    def test_unavailable(self):
        from scrapy.settings import Settings

        settings = Settings()
        with patch("markcrawl.__main__._check_playwright_available", return_value=False):
            assert _configure_playwright(settings) is False


class TestProjectSettings:
    def test_pipelines_registered(self):
        from scrapy.settings import Settings

        from markcrawl import settings as settings_module

        settings = Settings()
        settings.setmodule(settings_module, priority="project")
        assert settings.getdict("ITEM_PIPELINES") == {
            "markcrawl.pipelines.MarkdownWriterPipeline": 300,
            "markcrawl.pipelines.IndexWriterPipeline": 400,
        }

    def test_no_deprecated_or_unused_settings(self):
        from markcrawl import settings as settings_module

        assert not hasattr(settings_module, "REQUEST_FINGERPRINTER_IMPLEMENTATION")
        assert not hasattr(settings_module, "FEEDS")
