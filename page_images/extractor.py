"""Image reference extraction from a rendered page."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from playwright.async_api import Page

from .models import NATURAL, ImageRecord, SourceKind
from .utils import resolve_url

logger = logging.getLogger("page_images")

DEFAULT_ALT_TEXT = "No alt text"
SOURCE_ALT_TEXT = "Picture/video source"
BACKGROUND_ALT_TEXT = "Background image"
SVG_ALT_TEXT = "SVG image"

BACKGROUND_URL_PATTERN = re.compile(r"""url\(['"]?([^'")]+)['"]?\)""")

# Runs inside the page. Returns plain JSON only: one entry per image-bearing
# element, in document order, grouped by construct.
SNAPSHOT_SCRIPT = """
() => {
  const entries = [];
  const box = (el) => {
    const rect = el.getBoundingClientRect();
    return [Math.round(rect.width), Math.round(rect.height)];
  };

  document.querySelectorAll('img').forEach((img) => {
    const [boxWidth, boxHeight] = box(img);
    const sources = [
      img.src,
      img.dataset.src,
      img.dataset.lazySrc,
      img.dataset.original,
      img.dataset.lazyOriginal,
      img.getAttribute('data-src'),
      img.getAttribute('data-lazy-src'),
      img.getAttribute('data-original'),
      img.getAttribute('data-lazy-original'),
      img.currentSrc,
    ].filter(Boolean);
    entries.push({
      kind: 'img',
      sources: sources,
      srcset: img.srcset || '',
      width: img.naturalWidth || img.width || boxWidth || 0,
      height: img.naturalHeight || img.height || boxHeight || 0,
      alt: img.alt || img.title || '',
    });
  });

  document.querySelectorAll('source').forEach((source) => {
    const srcset = source.srcset || source.src || '';
    if (srcset) {
      entries.push({ kind: 'source', sources: [], srcset: srcset });
    }
  });

  document.querySelectorAll('*').forEach((el) => {
    const background = window.getComputedStyle(el).backgroundImage;
    if (background && background !== 'none' && background.includes('url(')) {
      const [boxWidth, boxHeight] = box(el);
      entries.push({
        kind: 'background',
        background: background,
        width: boxWidth,
        height: boxHeight,
        alt: el.getAttribute('aria-label') || '',
      });
    }
  });

  document.querySelectorAll('image').forEach((img) => {
    const href = (img.href && img.href.baseVal)
      || img.getAttribute('xlink:href')
      || img.getAttribute('href');
    if (href) {
      entries.push({
        kind: 'svg',
        sources: [href],
        width: img.width && img.width.baseVal ? img.width.baseVal.value : 0,
        height: img.height && img.height.baseVal ? img.height.baseVal.value : 0,
      });
    }
  });

  return entries;
}
"""


def parse_srcset(srcset: Optional[str]) -> List[str]:
    """Return the URL token of every candidate in a srcset attribute."""
    if not srcset:
        return []
    urls: List[str] = []
    for item in srcset.split(","):
        candidate = item.strip().split(" ")[0]
        if candidate:
            urls.append(candidate)
    return urls


def parse_background_urls(value: Optional[str]) -> List[str]:
    """Pull every ``url(...)`` reference out of a background-image value."""
    if not value or value == "none":
        return []
    return BACKGROUND_URL_PATTERN.findall(value)


def format_dimension(value: Any) -> str:
    """Render a pixel dimension, or the ``Natural`` sentinel when unknown."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return NATURAL
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value}px"


def _entry_sources(entry: Dict[str, Any]) -> Iterable[str]:
    kind = entry.get("kind")
    if kind == SourceKind.BACKGROUND.value:
        return parse_background_urls(entry.get("background"))
    sources = [src for src in entry.get("sources") or [] if src]
    return sources + parse_srcset(entry.get("srcset"))


def _entry_alt(entry: Dict[str, Any], kind: SourceKind) -> str:
    if kind is SourceKind.SOURCE:
        return SOURCE_ALT_TEXT
    if kind is SourceKind.SVG:
        return SVG_ALT_TEXT
    if kind is SourceKind.BACKGROUND:
        return entry.get("alt") or BACKGROUND_ALT_TEXT
    return entry.get("alt") or DEFAULT_ALT_TEXT


def build_records(snapshot: List[Dict[str, Any]], page_url: str) -> List[ImageRecord]:
    """Turn a page snapshot into unique image records, first occurrence wins."""
    records: Dict[str, ImageRecord] = {}
    for entry in snapshot:
        try:
            kind = SourceKind(entry.get("kind"))
        except ValueError:
            logger.debug("Ignoring snapshot entry of unknown kind %r", entry.get("kind"))
            continue
        for src in _entry_sources(entry):
            full_url = resolve_url(src, page_url)
            if not full_url or full_url in records:
                continue
            if kind is SourceKind.SOURCE:
                width = height = NATURAL
            else:
                width = format_dimension(entry.get("width"))
                height = format_dimension(entry.get("height"))
            records[full_url] = ImageRecord(
                url=full_url,
                width=width,
                height=height,
                alt_text=_entry_alt(entry, kind),
                kind=kind,
            )
    return list(records.values())


async def extract_images(page: Page, page_url: str) -> List[ImageRecord]:
    """Snapshot the rendered page and collect every distinct image reference."""
    snapshot = await page.evaluate(SNAPSHOT_SCRIPT)
    records = build_records(snapshot or [], page_url)
    logger.debug(
        "Snapshot of %s held %d entries -> %d unique images",
        page_url,
        len(snapshot or []),
        len(records),
    )
    return records
