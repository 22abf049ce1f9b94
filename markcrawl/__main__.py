"""CLI entry point: python -m markcrawl --url URL [options]"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

# Tell Scrapy which settings module to use (read during Settings() init).
os.environ.setdefault("SCRAPY_SETTINGS_MODULE", "markcrawl.settings")

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="markcrawl",
        description=(
            "Crawl a website and convert every page into clean, deterministic\n"
            "Markdown with normalized metadata."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--url", required=True, metavar="URL",
                        help="Start URL (or the single page to convert with --single)")
    parser.add_argument("--out", default="./out", metavar="DIR",
                        help="Output directory (default: ./out)")
    parser.add_argument("--max-depth", type=int, default=2, metavar="N",
                        help="Maximum crawl depth (default: 2)")
    parser.add_argument("--concurrency", type=int, default=8, metavar="N",
                        help="Concurrent requests (default: 8)")
    parser.add_argument("--readability", action="store_true", default=False,
                        help="Isolate the main content with readability before conversion")
    parser.add_argument("--heuristics", action="store_true", default=False,
                        help="Drop low-signal paragraphs (fewer than 6 words)")
    parser.add_argument("--render-js", action="store_true", default=False,
                        help="Render pages with headless Chromium (Playwright)")
    parser.add_argument("--screenshots", action="store_true", default=False,
                        help="Save a full-page screenshot of every page")
    parser.add_argument("--extra-domains", default=None, metavar="DOMAINS",
                        help=(
                            "Comma-separated extra domains to crawl "
                            "(e.g. 'blog.example.com,docs.example.com')"
                        ))
    parser.add_argument("--single", action="store_true", default=False,
                        help="Convert only --url and print its Markdown to stdout")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        metavar="{DEBUG,INFO,WARNING,ERROR}",
                        help="Logging level (default: INFO)")
    return parser


def _validate_args(args: argparse.Namespace) -> str | None:
    """Return an error message if any argument is invalid, else None."""
    from pydantic import ValidationError

    from markcrawl.config import ExtractionConfig

    if args.max_depth < 0:
        return f"--max-depth must be >= 0, got {args.max_depth}"
    if args.concurrency < 1:
        return f"--concurrency must be >= 1, got {args.concurrency}"
    try:
        ExtractionConfig(base_url=args.url)
    except ValidationError as exc:
        return f"Invalid --url {args.url!r}: {exc.errors()[0]['msg']}"
    return None


def _build_config(args: argparse.Namespace, out_dir: Path) -> Any:
    from markcrawl.config import ExtractionConfig

    return ExtractionConfig(
        base_url=args.url,
        enable_readability=args.readability,
        enable_heuristics=args.heuristics,
        enable_dynamic_rendering=args.render_js,
        enable_screenshots=args.screenshots,
        screenshot_dir=str(out_dir / "screenshots"),
    )


def _check_playwright_available() -> bool:
    """Return True if scrapy-playwright and chromium are both usable."""
    try:
        import scrapy_playwright  # noqa: F401
        from playwright.sync_api import sync_playwright

        with sync_playwright() as p:
            if not p.chromium.executable_path:
                return False
    except Exception:
        return False
    else:
        return True


def _configure_playwright(scrapy_settings: Any) -> bool:
    """Add Playwright download handlers to *scrapy_settings* if available.

    Returns True if successfully configured, False if Playwright is unavailable.
    """
    if not _check_playwright_available():
        return False
    scrapy_settings.set(
        "DOWNLOAD_HANDLERS",
        {
            "http": "scrapy_playwright.handler.ScrapyPlaywrightDownloadHandler",
            "https": "scrapy_playwright.handler.ScrapyPlaywrightDownloadHandler",
        },
        priority="cmdline",
    )
    scrapy_settings.set(
        "TWISTED_REACTOR",
        "twisted.internet.asyncioreactor.AsyncioSelectorReactor",
        priority="cmdline",
    )
    return True


def _print_banner(args: argparse.Namespace, out_dir: Path) -> None:
    from rich.console import Console
    from rich.panel import Panel

    def _flag(value: bool) -> str:
        return "[green]on[/green]" if value else "off"

    Console(stderr=True).print(
        Panel.fit(
            f"[bold cyan]markcrawl[/bold cyan]\n"
            f"URL:            [green]{args.url}[/green]\n"
            f"Output:         [yellow]{out_dir}[/yellow]\n"
            f"Max depth:      {args.max_depth}\n"
            f"Concurrency:    {args.concurrency}\n"
            f"Readability:    {_flag(args.readability)}\n"
            f"Heuristics:     {_flag(args.heuristics)}\n"
            f"Render JS:      {_flag(args.render_js)}\n"
            f"Screenshots:    {_flag(args.screenshots)}\n"
            f"Extra domains:  {args.extra_domains or '-'}",
            border_style="cyan",
            title="[bold]Configuration[/bold]",
        ),
    )


def _run_single(args: argparse.Namespace, out_dir: Path) -> int:
    """Convert one page and print its Markdown to stdout."""
    from markcrawl.errors import PageProcessingError
    from markcrawl.query import fetch

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        record = fetch(args.url, config=_build_config(args, out_dir))
    except PageProcessingError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    sys.stdout.write(record.markdown)
    sys.stdout.flush()
    return 0


def _run_crawl(args: argparse.Namespace, out_dir: Path) -> int:
    _print_banner(args, out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    # NOTE: do NOT call logging.basicConfig() here; CrawlerProcess installs
    # Scrapy's own handler on the root logger.
    from scrapy.crawler import CrawlerProcess
    from scrapy.settings import Settings

    from markcrawl import settings as settings_module

    scrapy_settings = Settings()
    scrapy_settings.setmodule(settings_module, priority="project")

    scrapy_settings.set("CONCURRENT_REQUESTS", args.concurrency, priority="cmdline")
    scrapy_settings.set("DEPTH_LIMIT", args.max_depth, priority="cmdline")
    scrapy_settings.set("LOG_LEVEL", args.log_level, priority="cmdline")
    scrapy_settings.set("OUTPUT_DIR", str(out_dir), priority="cmdline")

    render_js = args.render_js
    if render_js and not _configure_playwright(scrapy_settings):
        print(
            "WARNING: --render-js requested but Playwright/chromium is not "
            "installed. Run: playwright install chromium\n"
            "Falling back to static HTML extraction.",
            file=sys.stderr,
        )
        render_js = False

    config = _build_config(args, out_dir)
    try:
        process = CrawlerProcess(scrapy_settings)
        process.crawl(
            "page_spider",
            start_url=config.base_url,
            max_depth=args.max_depth,
            extra_domains=args.extra_domains,
            enable_readability=config.enable_readability,
            enable_heuristics=config.enable_heuristics,
            enable_dynamic_rendering=render_js,
            enable_screenshots=config.enable_screenshots,
            screenshot_dir=config.screenshot_dir,
        )
        process.start()
    except Exception:
        logger.exception("Crawl failed")
        return 1

    _print_summary(out_dir)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    error = _validate_args(args)
    if error:
        print(f"ERROR: {error}", file=sys.stderr)
        return 1

    out_dir = Path(args.out).resolve()
    if args.single:
        return _run_single(args, out_dir)
    return _run_crawl(args, out_dir)


def _load_index(out_dir: Path) -> list[dict]:
    index_path = out_dir / "index.json"
    if not index_path.exists():
        return []
    try:
        return json.loads(index_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.debug("Failed to read index.json: %s", exc)
        return []


def _print_summary(out_dir: Path) -> None:
    from rich import box
    from rich.console import Console
    from rich.rule import Rule
    from rich.table import Table

    console = Console(stderr=True)
    pages = _load_index(out_dir)
    total_words = sum(e.get("word_count", 0) for e in pages)

    console.print()
    console.print(Rule("[bold cyan]Crawl Summary[/bold cyan]"))
    console.print(f"  [bold]Pages converted  :[/bold] [green]{len(pages)}[/green]")
    console.print(f"  [bold]Total words      :[/bold] {total_words:,}")
    console.print(f"  [bold]Output directory :[/bold] [green]{out_dir}[/green]")
    console.print()

    if pages:
        tbl = Table(
            title=f"[bold green]Converted Pages ({len(pages)})[/bold green]",
            box=box.SIMPLE_HEAVY,
            show_lines=False,
        )
        tbl.add_column("#",     style="dim",  justify="right", width=4, no_wrap=True)
        tbl.add_column("Title", style="cyan", max_width=48,             no_wrap=True)
        tbl.add_column("Words", justify="right", width=7,               no_wrap=True)
        tbl.add_column("URL",   style="blue", max_width=60,             no_wrap=True)

        for i, e in enumerate(pages, 1):
            tbl.add_row(
                str(i),
                (e.get("title") or "-")[:45],
                str(e.get("word_count", 0)),
                e.get("url", "")[:60],
            )
        console.print(tbl)


if __name__ == "__main__":
    sys.exit(main())
