"""MCP server exposing the page image scraper as a tool."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

from mcp.server.fastmcp import Context, FastMCP

from .browser import SharedBrowser
from .config import ScrapeConfig
from .crawler import scrape

logger = logging.getLogger("page_images.mcp")
logger.setLevel(logging.ERROR)


@dataclass
class ServerState:
    """Resources shared by every tool call for the lifetime of the server."""

    browser: SharedBrowser
    config: ScrapeConfig = field(default_factory=ScrapeConfig)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[ServerState]:
    browser = SharedBrowser()
    browser.install_signal_handlers()
    try:
        yield ServerState(browser=browser)
    finally:
        await browser.close()


mcp = FastMCP(name="page-images", lifespan=lifespan)


@mcp.tool()
async def scrape_images(url: str, ctx: Context) -> dict:
    """Render a page in desktop and mobile viewports and list its images with sizes."""
    state: ServerState = ctx.request_context.lifespan_context
    result = await scrape(url, state.browser, state.config)
    return result.to_dict()


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
