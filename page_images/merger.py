"""Merging of per-viewport extraction results."""

from __future__ import annotations

import logging
from typing import Dict, List

from .models import ImageRecord, MergeResult

logger = logging.getLogger("page_images")


def merge(desktop: List[ImageRecord], mobile: List[ImageRecord]) -> MergeResult:
    """Combine two viewport passes keyed by URL; desktop records take precedence."""
    unified: Dict[str, ImageRecord] = {}
    for record in desktop:
        unified.setdefault(record.url, record)

    new_from_mobile = 0
    for record in mobile:
        if record.url not in unified:
            unified[record.url] = record
            new_from_mobile += 1

    logger.info(
        "Merged %d desktop and %d mobile images into %d unique (%d new from mobile)",
        len(desktop),
        len(mobile),
        len(unified),
        new_from_mobile,
    )
    return MergeResult(
        records=list(unified.values()),
        desktop_count=len(desktop),
        mobile_count=len(mobile),
        new_from_mobile=new_from_mobile,
    )
