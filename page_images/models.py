"""Data models used throughout the scraping pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

NATURAL = "Natural"
UNKNOWN_SIZE = "Unknown"


class SourceKind(str, Enum):
    """Construct an image reference was discovered in."""

    IMG = "img"
    SOURCE = "source"
    BACKGROUND = "background"
    SVG = "svg"


@dataclass
class ImageRecord:
    """Image reference discovered in a rendered page, keyed by its resolved URL."""

    url: str
    width: str
    height: str
    alt_text: str
    kind: SourceKind


@dataclass
class SizedImageRecord(ImageRecord):
    """Image reference joined with its probed byte size."""

    size_bytes: int = 0
    size_display: str = UNKNOWN_SIZE

    def to_dict(self) -> Dict[str, object]:
        return {
            "url": self.url,
            "width": self.width,
            "height": self.height,
            "alt": self.alt_text,
            "type": self.kind.value,
            "fileSize": self.size_display,
            "fileSizeBytes": self.size_bytes,
        }


@dataclass
class MergeResult:
    """Unified records from all viewport passes."""

    records: List[ImageRecord]
    desktop_count: int
    mobile_count: int
    new_from_mobile: int


@dataclass
class ScrapeResult:
    """Final report for a single scraped page."""

    url: str
    images: List[SizedImageRecord] = field(default_factory=list)
    new_from_mobile: int = 0

    @property
    def count(self) -> int:
        return len(self.images)

    @property
    def sized_count(self) -> int:
        return sum(1 for image in self.images if image.size_bytes > 0)

    def to_dict(self) -> Dict[str, object]:
        return {
            "images": [image.to_dict() for image in self.images],
            "count": self.count,
        }
