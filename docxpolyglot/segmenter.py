"""Batching and response normalisation utilities."""

from __future__ import annotations

import logging
import re
from typing import Any, List, Sequence

from .structures import Batch, TextSegment

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 40

XML_INCOMPATIBLE = re.compile(
    r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]"
)


class BatchBuilder:
    """Slices segments into contiguous batches of at most ``size`` items."""

    def __init__(self, size: int = DEFAULT_BATCH_SIZE) -> None:
        if size <= 0:
            raise ValueError("Batch size must be a positive integer.")
        self.size = size

    def build(self, segments: Sequence[TextSegment]) -> List[Batch]:
        batches: List[Batch] = []
        for batch_id, start in enumerate(range(0, len(segments), self.size), start=1):
            batches.append(
                Batch(
                    batch_id=batch_id,
                    start=start,
                    segments=list(segments[start:start + self.size]),
                )
            )
        return batches


def strip_xml_incompatible(text: str) -> str:
    """Remove characters that cannot appear in XML 1.0 text."""

    return XML_INCOMPATIBLE.sub("", text)


def normalize_translations(translated: Any, original: Sequence[str]) -> List[str]:
    """Force a backend response to the same length as the batch it answers.

    A non-list response yields the originals. A short response is padded with
    the untranslated tail, a long one is truncated. Items that are not strings
    fall back to their original, and characters XML cannot carry are dropped.
    """

    if not isinstance(translated, list):
        logger.warning(
            "Translation response was %s, not a list; keeping original text.",
            type(translated).__name__,
        )
        return list(original)

    items: List[str] = []
    for position, source in enumerate(original):
        candidate = translated[position] if position < len(translated) else source
        if not isinstance(candidate, str):
            if candidate is not None:
                logger.warning(
                    "Translation item %d was %s, not text; keeping original text.",
                    position,
                    type(candidate).__name__,
                )
            items.append(source)
            continue
        cleaned = strip_xml_incompatible(candidate)
        if cleaned != candidate:
            logger.warning(
                "Translation item %d contained characters invalid in XML; removed them.",
                position,
            )
        items.append(cleaned)

    if len(translated) != len(original):
        logger.warning(
            "Translation response had %d items for %d inputs; %s.",
            len(translated),
            len(original),
            "padded with original text"
            if len(translated) < len(original)
            else "truncated",
        )
    return items
