"""
Tests for the scrape orchestration: viewport passes, merging, sizing and failures.
"""
import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from page_images import crawler
from page_images.config import DESKTOP_VIEWPORT, MOBILE_VIEWPORT, ScrapeConfig
from page_images.crawler import (
    InvalidRequestError,
    ScrapeError,
    ScrapeTimeoutError,
    assemble,
    run_scrape,
    scrape,
)
from page_images.models import SourceKind

PAGE_URL = "https://example.com/"


def _img(src, alt="", width=100, height=100):
    return {"kind": "img", "sources": [src], "srcset": "", "width": width, "height": height, "alt": alt}


@pytest.fixture
def fast_config():
    return ScrapeConfig(wait_after_load=0)


@pytest.fixture
def sized(monkeypatch):
    """Replace network probing with a fixed 2 KB answer per URL."""
    calls = []

    async def fake_probe_all(urls, referer, config=None):
        calls.append((list(urls), referer))
        return [(2048, "2.00 KB") for _ in urls]

    monkeypatch.setattr(crawler, "probe_all", fake_probe_all)
    return calls


class TestRunScrape:
    def test_desktop_and_mobile_merged(self, make_page, fake_browser, fast_config, sized):
        desktop = make_page([_img("A.png", alt="a"), _img("B.png", alt="desktop b", width=1200)])
        mobile = make_page([_img("B.png", alt="mobile b", width=300), _img("C.png")])
        browser = fake_browser(desktop, mobile)

        result = asyncio.run(run_scrape(PAGE_URL, browser, fast_config))

        assert [image.url for image in result.images] == [
            "https://example.com/A.png",
            "https://example.com/B.png",
            "https://example.com/C.png",
        ]
        assert result.count == 3
        assert result.new_from_mobile == 1
        assert result.images[1].alt_text == "desktop b"
        assert result.images[1].width == "1200px"
        assert all(image.size_bytes == 2048 for image in result.images)
        assert sized == [([image.url for image in result.images], PAGE_URL)]

    def test_viewports_and_navigation(self, make_page, fake_browser, fast_config, sized):
        desktop, mobile = make_page([]), make_page([])
        browser = fake_browser(desktop, mobile)

        asyncio.run(run_scrape(PAGE_URL, browser, fast_config))

        first, second = browser.handle.new_page.call_args_list
        assert first.kwargs == {
            "viewport": {"width": 1920, "height": 1080},
            "user_agent": DESKTOP_VIEWPORT.user_agent,
        }
        assert second.kwargs == {
            "viewport": {"width": 375, "height": 812},
            "user_agent": MOBILE_VIEWPORT.user_agent,
        }
        desktop.goto.assert_awaited_once()
        assert desktop.goto.call_args.kwargs["wait_until"] == "domcontentloaded"
        assert desktop.goto.call_args.kwargs["timeout"] == 30000
        desktop.wait_for_load_state.assert_awaited_once()
        assert desktop.wait_for_load_state.call_args.args == ("networkidle",)
        desktop.close.assert_awaited_once()
        mobile.close.assert_awaited_once()

    def test_pause_and_scroll(self, make_page, fake_browser, sized):
        desktop, mobile = make_page([]), make_page([])
        browser = fake_browser(desktop, mobile)

        asyncio.run(run_scrape(PAGE_URL, browser, ScrapeConfig()))

        desktop.wait_for_timeout.assert_awaited_once_with(2000)
        scroll_call = desktop.evaluate.call_args_list[0]
        assert scroll_call.args[1] == [100, 100]

    def test_missing_url_rejected_before_rendering(self, fake_browser):
        browser = fake_browser()
        with pytest.raises(InvalidRequestError):
            asyncio.run(run_scrape("", browser))
        with pytest.raises(InvalidRequestError):
            asyncio.run(run_scrape(None, browser))
        browser.get.assert_not_awaited()

    def test_desktop_render_failure(self, make_page, fake_browser, fast_config, sized):
        desktop = make_page(goto_error=PlaywrightError("net::ERR_NAME_NOT_RESOLVED"))
        browser = fake_browser(desktop)

        with pytest.raises(ScrapeError) as excinfo:
            asyncio.run(run_scrape(PAGE_URL, browser, fast_config))

        assert str(excinfo.value).startswith("Failed to scrape images: ")
        assert "ERR_NAME_NOT_RESOLVED" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, PlaywrightError)
        desktop.close.assert_awaited_once()
        assert sized == []

    def test_mobile_render_failure_closes_pages(self, make_page, fake_browser, fast_config, sized):
        desktop = make_page([_img("A.png")])
        mobile = make_page(goto_error=PlaywrightError("Timeout 30000ms exceeded"))
        browser = fake_browser(desktop, mobile)

        with pytest.raises(ScrapeError):
            asyncio.run(run_scrape(PAGE_URL, browser, fast_config))

        desktop.close.assert_awaited_once()
        mobile.close.assert_awaited_once()
        assert sized == []

    def test_probe_failures_do_not_fail_scrape(self, make_page, fake_browser, fast_config, monkeypatch):
        async def unknown_sizes(urls, referer, config=None):
            return [(0, "Unknown") for _ in urls]

        monkeypatch.setattr(crawler, "probe_all", unknown_sizes)
        browser = fake_browser(make_page([_img("A.png")]), make_page([]))

        result = asyncio.run(run_scrape(PAGE_URL, browser, fast_config))

        assert result.to_dict()["images"][0]["fileSize"] == "Unknown"
        assert result.to_dict()["images"][0]["fileSizeBytes"] == 0
        assert result.sized_count == 0


class TestScrapeCeiling:
    def test_timeout(self, monkeypatch):
        async def never_finishes(url, browser, config=None):
            await asyncio.sleep(10)

        monkeypatch.setattr(crawler, "run_scrape", never_finishes)
        with pytest.raises(ScrapeTimeoutError) as excinfo:
            asyncio.run(scrape(PAGE_URL, object(), ScrapeConfig(request_timeout=0.05)))
        assert str(excinfo.value).startswith("Failed to scrape images: timed out")

    def test_passes_result_through(self, make_page, fake_browser, fast_config, sized):
        browser = fake_browser(make_page([_img("A.png")]), make_page([]))
        result = asyncio.run(scrape(PAGE_URL, browser, fast_config))
        assert result.count == 1


class TestAssemble:
    def test_joins_records_with_sizes(self, record):
        records = [record("https://x.test/a.png"), record("https://x.test/b.svg", kind=SourceKind.SVG)]
        result = assemble(PAGE_URL, records, [(1048576, "1.00 MB"), (0, "Unknown")], new_from_mobile=1)
        assert result.count == 2
        assert result.sized_count == 1
        assert result.new_from_mobile == 1
        assert result.to_dict() == {
            "images": [
                {
                    "url": "https://x.test/a.png",
                    "width": "100px",
                    "height": "50px",
                    "alt": "No alt text",
                    "type": "img",
                    "fileSize": "1.00 MB",
                    "fileSizeBytes": 1048576,
                },
                {
                    "url": "https://x.test/b.svg",
                    "width": "100px",
                    "height": "50px",
                    "alt": "No alt text",
                    "type": "svg",
                    "fileSize": "Unknown",
                    "fileSizeBytes": 0,
                },
            ],
            "count": 2,
        }

    def test_mismatch_raises(self, record):
        with pytest.raises(RuntimeError):
            assemble(PAGE_URL, [record("https://x.test/a.png")], [])
