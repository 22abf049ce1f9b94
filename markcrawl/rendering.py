"""Headless rendering collaborator backed by Playwright.

Each worker thread owns one Chromium instance (Playwright's sync API is not
thread-safe), with a small LRU of browser contexts.  Browsers are closed at
interpreter exit.

All failures, including a missing ``playwright`` install, surface as
:class:`~markcrawl.errors.RenderError` so callers can treat them as
page-level failures.
"""

from __future__ import annotations

import atexit
import contextlib
import logging
import threading
import time
from collections import OrderedDict
from pathlib import Path
from typing import Any

from markcrawl.errors import RenderError

logger = logging.getLogger(__name__)

_LAUNCH_ARGS: list[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]
_VIEWPORT = {"width": 1920, "height": 1080}
_NETWORKIDLE_TIMEOUT_MS = 10_000


class _ThreadState:
    def __init__(self) -> None:
        self.playwright: Any = None
        self.browser: Any = None
        self.contexts: OrderedDict[tuple[Any, ...], Any] = OrderedDict()


class PlaywrightPool:
    """Thread-local Chromium instances with an LRU of browser contexts."""

    def __init__(self, max_contexts: int = 2) -> None:
        self._max_contexts = max(1, max_contexts)
        self._local = threading.local()

    def _state(self) -> _ThreadState:
        state = getattr(self._local, "state", None)
        if state is None:
            state = _ThreadState()
            self._local.state = state
        return state

    def _ensure_browser(self, state: _ThreadState) -> None:
        if state.browser is not None:
            return
        from playwright.sync_api import sync_playwright

        state.playwright = sync_playwright().start()
        state.browser = state.playwright.chromium.launch(headless=True, args=_LAUNCH_ARGS)

    def get_context(self, user_agent: str | None = None) -> Any:
        state = self._state()
        self._ensure_browser(state)
        key = (user_agent,)
        if key in state.contexts:
            state.contexts.move_to_end(key)
            return state.contexts[key]
        ctx_kwargs: dict[str, Any] = {"java_script_enabled": True, "viewport": _VIEWPORT}
        if user_agent:
            ctx_kwargs["user_agent"] = user_agent
        ctx = state.browser.new_context(**ctx_kwargs)
        state.contexts[key] = ctx
        while len(state.contexts) > self._max_contexts:
            _, old = state.contexts.popitem(last=False)
            with contextlib.suppress(Exception):
                old.close()
        return ctx

    def close(self) -> None:
        """Close the calling thread's browser, if it started one."""
        state = getattr(self._local, "state", None)
        if not state:
            return
        for ctx in list(state.contexts.values()):
            with contextlib.suppress(Exception):
                ctx.close()
        state.contexts.clear()
        if state.browser is not None:
            with contextlib.suppress(Exception):
                state.browser.close()
            state.browser = None
        if state.playwright is not None:
            with contextlib.suppress(Exception):
                state.playwright.stop()
            state.playwright = None


_GLOBAL_POOL = PlaywrightPool()


def get_playwright_pool() -> PlaywrightPool:
    return _GLOBAL_POOL


@atexit.register
def _close_pool() -> None:
    _GLOBAL_POOL.close()


def _open_page(url: str, timeout: int, user_agent: str | None) -> Any:
    """Navigate a new page to *url* and wait for it to settle."""
    ctx = get_playwright_pool().get_context(user_agent)
    page = ctx.new_page()
    page.goto(url, timeout=timeout * 1_000, wait_until="load")
    try:
        page.wait_for_load_state("networkidle", timeout=_NETWORKIDLE_TIMEOUT_MS)
    except Exception:
        logger.debug("Playwright networkidle timed out for %s; continuing", url)
    return page


def render_html(url: str, *, timeout: int = 30, user_agent: str | None = None) -> str:
    """Return the fully rendered HTML of *url*.

    Raises:
        RenderError: when Playwright is unavailable, navigation fails, or the
            page renders empty.
    """
    page = None
    try:
        page = _open_page(url, timeout, user_agent)
        html: str = page.content()
    except ImportError as exc:
        raise RenderError(
            "dynamic rendering requires playwright: pip install playwright && "
            "playwright install chromium",
            url=url,
        ) from exc
    except Exception as exc:
        raise RenderError(f"Playwright error rendering {url}: {exc}", url=url) from exc
    finally:
        if page is not None:
            with contextlib.suppress(Exception):
                page.close()
    if not html.strip():
        raise RenderError(f"Playwright returned empty page for {url}", url=url)
    return html


def capture_screenshot(
    url: str,
    out_dir: str | Path = "./screenshots",
    *,
    timeout: int = 30,
    user_agent: str | None = None,
) -> str:
    """Screenshot *url* into ``out_dir/screenshot_<ns>.png`` and return the path.

    Raises:
        RenderError: when Playwright fails or the file cannot be written.
    """
    directory = Path(out_dir)
    path = directory / f"screenshot_{time.time_ns()}.png"
    page = None
    try:
        directory.mkdir(parents=True, exist_ok=True)
        page = _open_page(url, timeout, user_agent)
        page.screenshot(path=str(path), full_page=True)
    except ImportError as exc:
        raise RenderError(
            "screenshots require playwright: pip install playwright && "
            "playwright install chromium",
            url=url,
        ) from exc
    except Exception as exc:
        raise RenderError(f"screenshot failed for {url}: {exc}", url=url) from exc
    finally:
        if page is not None:
            with contextlib.suppress(Exception):
                page.close()
    logger.info("Screenshot saved: %s", path)
    return str(path)


class PlaywrightRenderer:
    """Rendering collaborator injected into :class:`~markcrawl.extraction.PageExtractor`."""

    def __init__(self, timeout: int = 30, user_agent: str | None = None) -> None:
        self.timeout = timeout
        self.user_agent = user_agent

    def render(self, url: str) -> str:
        return render_html(url, timeout=self.timeout, user_agent=self.user_agent)

    def screenshot(self, url: str, out_dir: str) -> str:
        return capture_screenshot(
            url, out_dir, timeout=self.timeout, user_agent=self.user_agent,
        )
