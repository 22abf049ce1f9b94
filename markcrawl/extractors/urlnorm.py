"""URL resolution, srcset parsing, and cache-key normalization."""

from __future__ import annotations

import re
from urllib.parse import (
    SplitResult,
    parse_qs,
    quote,
    urlencode,
    urljoin,
    urlsplit,
    urlunsplit,
)

# Query parameters that carry no semantic meaning for page identity
_TRACKING_PARAMS: frozenset[str] = frozenset(
    {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "utm_id",
        "fbclid",
        "gclid",
        "dclid",
        "msclkid",
        "_ga",
        "mc_cid",
        "mc_eid",
        "igshid",
    },
)

_DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")

# RFC 3986 pchar plus "/"; "%" stays so existing escapes survive
_PATH_SAFE = "/%:@!$&'()*+,;=-._~"
_FRAGMENT_SAFE = _PATH_SAFE + "?"

_SLUG_SAFE_RE = re.compile(r"[^\w\-]")
_MULTI_DASH_RE = re.compile(r"-{2,}")


def _parse_reference(ref: str) -> SplitResult | None:
    """Split *ref* as a URI reference, or return None if it is malformed."""
    if _CONTROL_CHARS_RE.search(ref):
        return None
    # Query and fragment are kept raw; only the path must be well escaped.
    if _BAD_ESCAPE_RE.search(re.split(r"[?#]", ref, maxsplit=1)[0]):
        return None
    try:
        parts = urlsplit(ref)
        # Accessing .port validates the authority component.
        parts.port  # noqa: B018
    except ValueError:
        return None
    return parts


def resolve_url(base: str, relative: str) -> str:
    """Resolve *relative* against *base*.

    Resolution failures are non-fatal: when either reference cannot be
    parsed, *relative* is returned unchanged.  Unsafe characters in the
    resolved path and fragment (spaces, non-ASCII) are percent-encoded;
    the query is kept as written.
    """
    if _parse_reference(base) is None or _parse_reference(relative) is None:
        return relative
    try:
        parts = urlsplit(urljoin(base, relative))
    except ValueError:
        return relative
    return urlunsplit(parts._replace(
        path=quote(parts.path, safe=_PATH_SAFE),
        fragment=quote(parts.fragment, safe=_FRAGMENT_SAFE),
    ))


def parse_srcset(srcset: str) -> list[str]:
    """Return the candidate URLs of a ``srcset`` attribute, in order.

    Each comma-separated candidate contributes its first whitespace-delimited
    token; width/density descriptors are ignored.
    """
    urls: list[str] = []
    for entry in srcset.split(","):
        parts = entry.split()
        if parts:
            urls.append(parts[0])
    return urls


def normalize_url(url: str) -> str:
    """Return a canonical form of *url* suitable as a cache key.

    Transformations applied:
    - Lowercase scheme and host
    - Remove default ports
    - Strip URL fragment
    - Remove known tracking query parameters
    - Sort remaining query parameters
    """
    url = url.strip()
    parsed = _parse_reference(url)
    if parsed is None:
        return url

    scheme = parsed.scheme.lower()
    netloc = parsed.netloc.lower()

    if parsed.port is not None and _DEFAULT_PORTS.get(scheme) == parsed.port:
        netloc = netloc.rsplit(":", 1)[0]

    if parsed.query:
        qs = parse_qs(parsed.query, keep_blank_values=True)
        cleaned = {k: v for k, v in qs.items() if k.lower() not in _TRACKING_PARAMS}
        query = urlencode(sorted(cleaned.items()), doseq=True)
    else:
        query = ""

    return urlunsplit((scheme, netloc, parsed.path, query, ""))


def url_to_slug(url: str, max_length: int = 100) -> str:
    """Convert a URL into a filesystem-safe slug.

    Example:
        https://example.com/docs/getting-started → docs-getting-started
    """
    parsed = urlsplit(url)
    path = parsed.path.strip("/")
    if not path:
        path = parsed.netloc.replace(".", "-")

    slug = _SLUG_SAFE_RE.sub("-", path)
    slug = _MULTI_DASH_RE.sub("-", slug).strip("-")
    slug = slug[:max_length].strip("-")
    return slug or "index"


def extract_domain(url: str) -> str:
    """Return the host component of a URL, lowercased."""
    parsed = _parse_reference(url)
    if parsed is None:
        return ""
    return parsed.hostname or ""
