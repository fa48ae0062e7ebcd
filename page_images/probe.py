"""Image size probing over HTTP and for inline data URIs."""

from __future__ import annotations

import asyncio
import logging
import math
import re
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import unquote

import requests

from .config import ScrapeConfig
from .models import UNKNOWN_SIZE
from .utils import shorten

logger = logging.getLogger("page_images")

MEGABYTE = 1024 * 1024
KILOBYTE = 1024

BASE64_DATA_PATTERN = re.compile(r"^data:[^,]*;base64,(.+)$", re.DOTALL)
LITERAL_DATA_PATTERN = re.compile(r"^data:[^,]*,(.+)$", re.DOTALL)

PROBE_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
)


def build_headers(referer: str) -> Dict[str, str]:
    """Browser-like request headers for fetching an image linked from ``referer``."""
    return {
        "User-Agent": PROBE_USER_AGENT,
        "Accept": "image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Cache-Control": "no-cache",
        "Referer": referer,
    }


def format_size(size_bytes: int) -> str:
    """Human readable size: MB from one mebibyte up, KB below, ``Unknown`` for 0."""
    if size_bytes <= 0:
        return UNKNOWN_SIZE
    if size_bytes >= MEGABYTE:
        return f"{size_bytes / MEGABYTE:.2f} MB"
    return f"{size_bytes / KILOBYTE:.2f} KB"


def data_uri_size(url: str) -> int:
    """Estimate the decoded size of a data URI; 0 when it cannot be determined.

    Base64 payloads use ``ceil(len * 3 / 4)`` without correcting for padding.
    """
    match = BASE64_DATA_PATTERN.match(url)
    if match:
        return math.ceil(len(match.group(1)) * 3 / 4)
    match = LITERAL_DATA_PATTERN.match(url)
    if match:
        try:
            return len(unquote(match.group(1), errors="strict"))
        except UnicodeDecodeError:
            logger.debug("Undecodable data URI payload: %s", shorten(url))
            return 0
    return 0


def _raise_for_server_error(response: requests.Response) -> None:
    # Anything below 500 is an ordinary answer; only server errors count as failures.
    if response.status_code >= 500:
        raise requests.HTTPError(
            f"{response.status_code} Server Error for url: {response.url}",
            response=response,
        )


def _head_size(
    session: requests.Session,
    url: str,
    headers: Dict[str, str],
    timeout: float,
) -> Optional[int]:
    try:
        response = session.head(url, headers=headers, timeout=timeout, allow_redirects=True)
        _raise_for_server_error(response)
        content_length = response.headers.get("Content-Length")
        if response.status_code == 200 and content_length is not None:
            size = int(content_length)
            if size >= 0:
                logger.debug("HEAD %d bytes - %s", size, shorten(url))
                return size
        logger.debug(
            "HEAD returned status %s without a usable Content-Length for %s",
            response.status_code,
            shorten(url),
        )
    except (requests.RequestException, ValueError) as exc:
        logger.debug("HEAD failed for %s: %s", shorten(url), exc)
    return None


def _get_size(
    session: requests.Session,
    url: str,
    headers: Dict[str, str],
    timeout: float,
) -> int:
    try:
        response = session.get(url, headers=headers, timeout=timeout, allow_redirects=True)
        _raise_for_server_error(response)
    except requests.RequestException as exc:
        logger.warning("Failed to size image %s: %s", shorten(url), exc)
        return 0
    if response.status_code != 200:
        logger.warning("GET returned status %s for %s", response.status_code, shorten(url))
        return 0
    size = len(response.content)
    logger.debug("GET %d bytes - %s", size, shorten(url))
    return size


def probe_size(
    url: str,
    referer: str,
    config: Optional[ScrapeConfig] = None,
) -> Tuple[int, str]:
    """Determine the byte size of an image, returning ``(bytes, display)``.

    Data URIs are measured locally. Remote URLs try HEAD first and fall back
    to a full GET; a failed probe yields ``(0, "Unknown")``.
    """
    config = config or ScrapeConfig()
    if url.startswith("data:"):
        size = data_uri_size(url)
        return size, format_size(size)

    headers = build_headers(referer)
    with requests.Session() as session:
        session.max_redirects = config.max_redirects
        size = _head_size(session, url, headers, config.head_timeout)
        if size is None:
            size = _get_size(session, url, headers, config.get_timeout)
    return size, format_size(size)


async def probe_all(
    urls: Sequence[str],
    referer: str,
    config: Optional[ScrapeConfig] = None,
) -> List[Tuple[int, str]]:
    """Probe every URL concurrently and wait for all of them to settle.

    Results line up with ``urls``. A probe that raises is reported as unknown
    without affecting the others.
    """
    config = config or ScrapeConfig()
    semaphore = (
        asyncio.Semaphore(config.max_concurrent_probes)
        if config.max_concurrent_probes
        else None
    )

    async def _probe(url: str) -> Tuple[int, str]:
        if semaphore is None:
            return await asyncio.to_thread(probe_size, url, referer, config)
        async with semaphore:
            return await asyncio.to_thread(probe_size, url, referer, config)

    outcomes = await asyncio.gather(*(_probe(url) for url in urls), return_exceptions=True)

    results: List[Tuple[int, str]] = []
    for index, (url, outcome) in enumerate(zip(urls, outcomes), start=1):
        if isinstance(outcome, Exception):
            logger.warning("[%d] FAILED: %s - %s", index, outcome, shorten(url))
            results.append((0, UNKNOWN_SIZE))
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            results.append(outcome)
    return results
