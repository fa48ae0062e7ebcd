"""Utility helpers for URL normalization and log formatting."""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlparse

ABSOLUTE_HTTP_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


def resolve_url(src: str, page_url: str) -> str:
    """Convert an image reference into an absolute, fetchable URL.

    ``data:`` URIs and absolute http(s) URLs pass through untouched,
    protocol-relative references are pinned to https, root-relative ones are
    joined to the page origin and everything else is resolved against the page
    URL. On failure the raw value is returned.
    """
    if not src or src.startswith("data:"):
        return src
    try:
        if ABSOLUTE_HTTP_PATTERN.match(src):
            return src
        if src.startswith("//"):
            return "https:" + src
        if src.startswith("/"):
            parsed = urlparse(page_url)
            if not parsed.scheme or not parsed.netloc:
                return src
            return f"{parsed.scheme}://{parsed.netloc}{src}"
        return urljoin(page_url, src)
    except ValueError:
        return src


def shorten(value: str, limit: int = 80) -> str:
    """Trim long values such as data URIs for log output."""
    if len(value) <= limit:
        return value
    return value[:limit] + "..."
