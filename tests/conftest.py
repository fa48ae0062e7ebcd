"""
Shared test fixtures for the page image scraper.

Browser and network access are replaced by mocks: pages answer
``evaluate`` with canned snapshots and probes never leave the process.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from page_images.models import ImageRecord, SourceKind


def make_record(url, kind=SourceKind.IMG, width="100px", height="50px", alt="No alt text"):
    return ImageRecord(url=url, width=width, height=height, alt_text=alt, kind=kind)


@pytest.fixture
def record():
    """Factory for ImageRecord instances with sensible defaults."""
    return make_record


@pytest.fixture
def make_page():
    """Factory for a fake Playwright page that returns ``snapshot`` from extraction."""

    def _make(snapshot=None, goto_error=None):
        page = MagicMock()
        page.goto = AsyncMock(side_effect=goto_error)
        page.wait_for_load_state = AsyncMock()
        page.wait_for_timeout = AsyncMock()
        page.close = AsyncMock()

        def evaluate(script, *args):
            # The scroll script is the only one called with arguments.
            if args:
                return 1200
            return list(snapshot or [])

        page.evaluate = AsyncMock(side_effect=evaluate)
        return page

    return _make


@pytest.fixture
def fake_browser():
    """Factory for a SharedBrowser double that hands out the given pages in order."""

    def _make(*pages):
        handle = MagicMock()
        handle.new_page = AsyncMock(side_effect=list(pages))
        shared = MagicMock()
        shared.get = AsyncMock(return_value=handle)
        shared.handle = handle
        return shared

    return _make
