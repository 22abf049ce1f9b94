"""Scrapy project settings for markcrawl.

Scrapy 2.13+ compatibility notes:
- spider argument removed from pipeline methods
- Playwright handlers configured in __main__.py only when dynamic rendering
  is requested, to avoid startup errors when chromium is not installed.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Project identity
# ---------------------------------------------------------------------------
BOT_NAME = "markcrawl"

SPIDER_MODULES = ["markcrawl.spiders"]
NEWSPIDER_MODULE = "markcrawl.spiders"

# ---------------------------------------------------------------------------
# Crawl politeness and concurrency
# ---------------------------------------------------------------------------
ROBOTSTXT_OBEY = True

DOWNLOAD_DELAY = 0.5
CONCURRENT_REQUESTS = 8
CONCURRENT_REQUESTS_PER_DOMAIN = 4

# Depth is enforced by DepthMiddleware; overridden by --max-depth
DEPTH_LIMIT = 2

DOWNLOAD_TIMEOUT = 30

# ---------------------------------------------------------------------------
# Retry policy
# ---------------------------------------------------------------------------
RETRY_ENABLED = True
RETRY_TIMES = 2
RETRY_HTTP_CODES = [500, 502, 503, 504, 408, 429]

# ---------------------------------------------------------------------------
# User-agent
# ---------------------------------------------------------------------------
USER_AGENT = "markcrawl/0.1 (+https://github.com/markcrawl/markcrawl)"

# ---------------------------------------------------------------------------
# Item pipelines
# ---------------------------------------------------------------------------
ITEM_PIPELINES: dict[str, int] = {
    "markcrawl.pipelines.MarkdownWriterPipeline": 300,
    "markcrawl.pipelines.IndexWriterPipeline": 400,
}

# ---------------------------------------------------------------------------
# Output directory (override via CLI --out)
# ---------------------------------------------------------------------------
OUTPUT_DIR = "./out"

# ---------------------------------------------------------------------------
# Scrapy-Playwright (dynamic rendering)
# ---------------------------------------------------------------------------
# DOWNLOAD_HANDLERS and TWISTED_REACTOR are intentionally NOT set here; see
# __main__._configure_playwright.
PLAYWRIGHT_BROWSER_TYPE = "chromium"
PLAYWRIGHT_LAUNCH_OPTIONS: dict = {
    "headless": True,
    "args": [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-gpu",
    ],
}
PLAYWRIGHT_DEFAULT_NAVIGATION_TIMEOUT = 30_000  # ms

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

# ---------------------------------------------------------------------------
# Telemetry
# ---------------------------------------------------------------------------
TELNETCONSOLE_ENABLED = False
