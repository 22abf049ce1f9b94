"""Single-flight, URL-keyed result cache.

``compute`` runs at most once per key for the lifetime of a
:class:`ResultCache`.  Concurrent callers asking for a key that is still being
computed block until the first computation finishes and then receive the same
object.  One lock guards the key map; the computation itself runs outside the
lock so unrelated keys are processed in parallel.

Failed computations are not cached: the exception is re-raised in the owning
thread and in every waiter, and the key is released so a later call may try
again.  Entries are never evicted within a run.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResultCache(Generic[T]):
    """Thread-safe single-flight cache keyed by URL string."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, Future[T]] = {}

    def get_or_compute(self, url: str, compute: Callable[[], T]) -> T:
        """Return the cached value for *url*, computing it once if absent."""
        with self._lock:
            future = self._entries.get(url)
            owner = future is None
            if owner:
                future = Future()
                self._entries[url] = future

        assert future is not None
        if not owner:
            logger.debug("cache wait/hit: %s", url)
            return future.result()

        try:
            value = compute()
        except BaseException as exc:
            with self._lock:
                self._entries.pop(url, None)
            future.set_exception(exc)
            raise
        future.set_result(value)
        return value

    def get(self, url: str) -> T | None:
        """Return the completed value for *url*, or None if absent or pending."""
        with self._lock:
            future = self._entries.get(url)
        if future is None or not future.done() or future.exception() is not None:
            return None
        return future.result()

    def snapshot(self) -> dict[str, T]:
        """Return a copy of all completed entries."""
        with self._lock:
            items = list(self._entries.items())
        return {
            url: fut.result()
            for url, fut in items
            if fut.done() and fut.exception() is None
        }

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.get(url) is not None

    def __len__(self) -> int:
        return len(self.snapshot())
