"""High-level orchestration for scraping and sizing the images of a page."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional, Sequence, Tuple

from playwright.async_api import Error as PlaywrightError

from .browser import SharedBrowser, render
from .config import ScrapeConfig, Viewport
from .extractor import extract_images
from .merger import merge
from .models import ImageRecord, ScrapeResult, SizedImageRecord
from .probe import probe_all

logger = logging.getLogger("page_images")

ERROR_PREFIX = "Failed to scrape images: "


class InvalidRequestError(ValueError):
    """The scrape request is missing its target URL."""


class ScrapeError(RuntimeError):
    """Rendering a viewport pass failed; the whole scrape is abandoned."""


class ScrapeTimeoutError(ScrapeError):
    """The scrape did not finish within the request ceiling."""


def validate_url(url: Optional[str]) -> str:
    if url is None or not str(url).strip():
        raise InvalidRequestError("URL is required")
    return str(url).strip()


async def scrape_viewport(
    browser: SharedBrowser,
    url: str,
    viewport: Viewport,
    config: ScrapeConfig,
) -> List[ImageRecord]:
    """Render ``url`` under one viewport and extract its images."""
    handle = await browser.get()
    async with render(handle, url, viewport, config) as page:
        records = await extract_images(page, url)
    logger.info("%s: Found %d images", viewport.name.capitalize(), len(records))
    return records


def assemble(
    url: str,
    records: Sequence[ImageRecord],
    sizes: Sequence[Tuple[int, str]],
    new_from_mobile: int = 0,
) -> ScrapeResult:
    """Join each record with its probed size."""
    if len(records) != len(sizes):
        raise RuntimeError(
            "Mismatch between image records and probed sizes "
            f"({len(records)} != {len(sizes)})"
        )
    images = [
        SizedImageRecord(
            url=record.url,
            width=record.width,
            height=record.height,
            alt_text=record.alt_text,
            kind=record.kind,
            size_bytes=size_bytes,
            size_display=size_display,
        )
        for record, (size_bytes, size_display) in zip(records, sizes)
    ]
    return ScrapeResult(url=url, images=images, new_from_mobile=new_from_mobile)


async def run_scrape(
    url: Optional[str],
    browser: SharedBrowser,
    config: Optional[ScrapeConfig] = None,
) -> ScrapeResult:
    """Scrape desktop then mobile layouts of ``url`` and size every unique image."""
    url = validate_url(url)
    config = config or ScrapeConfig()
    start = time.perf_counter()
    logger.info("Scraping %s", url)

    try:
        desktop = await scrape_viewport(browser, url, config.desktop_viewport, config)
        mobile = await scrape_viewport(browser, url, config.mobile_viewport, config)
    except PlaywrightError as exc:
        logger.error("Scraping error for %s: %s", url, exc)
        raise ScrapeError(f"{ERROR_PREFIX}{exc}") from exc

    merged = merge(desktop, mobile)
    sizes = await probe_all([record.url for record in merged.records], url, config)
    result = assemble(url, merged.records, sizes, merged.new_from_mobile)

    logger.info(
        "Results: %d/%d images sized successfully in %.2fs",
        result.sized_count,
        result.count,
        time.perf_counter() - start,
    )
    return result


async def scrape(
    url: Optional[str],
    browser: SharedBrowser,
    config: Optional[ScrapeConfig] = None,
) -> ScrapeResult:
    """Run a scrape bounded by the request ceiling."""
    config = config or ScrapeConfig()
    try:
        return await asyncio.wait_for(
            run_scrape(url, browser, config), timeout=config.request_timeout
        )
    except asyncio.TimeoutError as exc:
        logger.error("Scrape of %s exceeded %.0fs", url, config.request_timeout)
        raise ScrapeTimeoutError(
            f"{ERROR_PREFIX}timed out after {config.request_timeout:.0f}s"
        ) from exc
