"""Per-run extraction configuration.

An :class:`ExtractionConfig` is built once per request or crawl and passed by
value through the pipeline.  It is frozen: per-page variations (the base URL
of each visited page) are produced with :meth:`ExtractionConfig.with_base_url`,
which returns a new instance.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, field_validator

_TRUE_VALUES: frozenset[str] = frozenset({"1", "true", "yes", "on", "y", "t"})
_FALSE_VALUES: frozenset[str] = frozenset({"0", "false", "no", "off", "n", "f", ""})


def parse_bool(value: Any) -> bool:
    """Parse a request-style boolean (``"1"``, ``"true"``, ``"off"`` …)."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean value: {value!r}")


class ExtractionConfig(BaseModel):
    """Immutable configuration for one extraction run.

    Attributes:
        base_url:                 Absolute http(s) URL used to resolve
                                  relative links and media sources.
        enable_readability:       Isolate the main content with
                                  readability-lxml before serialization.
        enable_heuristics:        Drop low-signal paragraphs from the output.
        enable_dynamic_rendering: Source HTML comes from the headless
                                  renderer instead of a static fetch.
        enable_screenshots:       Ask the renderer for a page screenshot.
        screenshot_dir:           Directory screenshots are written to.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str
    enable_readability: bool = False
    enable_heuristics: bool = False
    enable_dynamic_rendering: bool = False
    enable_screenshots: bool = False
    screenshot_dir: str = "./screenshots"

    @field_validator("base_url", mode="before")
    @classmethod
    def check_base_url(cls, v: Any) -> Any:
        if not isinstance(v, str):
            return v
        v = v.strip()
        try:
            parts = urlsplit(v)
        except ValueError as exc:
            raise ValueError(f"invalid base_url {v!r}: {exc}") from exc
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"base_url must be an absolute http(s) URL, got {v!r}")
        return v

    @field_validator("screenshot_dir")
    @classmethod
    def check_screenshot_dir(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("screenshot_dir must not be empty")
        return v

    def with_base_url(self, url: str) -> ExtractionConfig:
        """Return a copy of this config resolving against *url*."""
        return ExtractionConfig(**{**self.model_dump(), "base_url": url})

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> ExtractionConfig:
        """Build a config from request-level string parameters.

        Accepts ``url`` or ``base_url`` for the base URL and the short flag
        names ``readability``, ``heuristics``, ``render_js`` and
        ``screenshots`` (as well as the full field names).

        Raises:
            ValueError: when the base URL is missing or a flag is not a
                boolean.  Pydantic's ``ValidationError`` is a subclass.
        """
        aliases = {
            "readability": "enable_readability",
            "heuristics": "enable_heuristics",
            "render_js": "enable_dynamic_rendering",
            "screenshots": "enable_screenshots",
        }
        base_url = params.get("base_url") or params.get("url")
        if not base_url:
            raise ValueError("a 'url' parameter is required")

        kwargs: dict[str, Any] = {"base_url": base_url}
        for key, value in params.items():
            field = aliases.get(key, key)
            if field.startswith("enable_") and field in cls.model_fields:
                kwargs[field] = parse_bool(value)
            elif field == "screenshot_dir":
                kwargs[field] = str(value)
        return cls(**kwargs)
