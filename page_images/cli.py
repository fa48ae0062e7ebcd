"""Command-line entry point for the page image scraper."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Sequence

from .browser import SharedBrowser
from .config import ScrapeConfig
from .crawler import InvalidRequestError, ScrapeError, scrape
from .models import ScrapeResult
from .utils import shorten

logger = logging.getLogger("page_images.cli")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Render a page in desktop and mobile viewports with Playwright and "
            "report every image it references along with its size."
        ),
    )
    parser.add_argument("url", help="Page URL to scrape")
    parser.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Output format (default: table)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the results to this file instead of STDOUT",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Navigation timeout in seconds",
    )
    parser.add_argument(
        "--wait",
        type=float,
        default=2.0,
        help="Seconds to wait after load before scrolling",
    )
    parser.add_argument(
        "--request-timeout",
        type=float,
        default=120.0,
        help="Upper bound in seconds for the whole scrape",
    )
    parser.add_argument(
        "--max-probes",
        type=_positive_int,
        default=None,
        help="Limit the number of concurrent size probes (default: unlimited)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ScrapeConfig:
    return ScrapeConfig(
        navigation_timeout=args.timeout,
        wait_after_load=args.wait,
        request_timeout=args.request_timeout,
        max_concurrent_probes=args.max_probes,
    )


def render_table(result: ScrapeResult) -> str:
    """Plain-text table with one row per image and a summary line."""
    lines: List[str] = [
        f"{'#':>4}  {'type':<10}  {'size':>10}  {'width':>8}  {'height':>8}  {'alt':<24}  url",
    ]
    for index, image in enumerate(result.images, start=1):
        lines.append(
            f"{index:>4}  {image.kind.value:<10}  {image.size_display:>10}  "
            f"{image.width:>8}  {image.height:>8}  {shorten(image.alt_text, 21):<24}  "
            f"{shorten(image.url)}"
        )
    lines.append(
        f"{result.count} images ({result.new_from_mobile} only on mobile, "
        f"{result.sized_count} sized)"
    )
    return "\n".join(lines) + "\n"


def render_output(result: ScrapeResult, output_format: str) -> str:
    if output_format == "json":
        return json.dumps(result.to_dict(), indent=2) + "\n"
    return render_table(result)


async def _scrape_once(url: str, config: ScrapeConfig) -> ScrapeResult:
    async with SharedBrowser() as browser:
        browser.install_signal_handlers()
        return await scrape(url, browser, config)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    try:
        result = asyncio.run(_scrape_once(args.url, build_config(args)))
    except InvalidRequestError as exc:
        logger.error("%s", exc)
        return 2
    except ScrapeError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130

    rendered = render_output(result, args.format)
    if args.output:
        args.output.write_text(rendered, encoding="utf-8")
        logger.info("Saved results to %s", args.output)
    else:
        sys.stdout.write(rendered)
        sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
