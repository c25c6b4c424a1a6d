"""Reading statistics for a finished Markdown document."""

from __future__ import annotations

import math
from typing import Optional

from unraveler.config import settings
from unraveler.scraper.models import ScrapeResult


def count_words(markdown: str) -> int:
    """Number of whitespace-delimited tokens in *markdown*."""
    return len(markdown.split())


def estimate_read_time(word_count: int, words_per_minute: Optional[int] = None) -> int:
    """Minutes needed to read *word_count* words, rounded up.

    Zero words read in zero minutes; anything else takes at least one.
    """
    wpm = words_per_minute or settings.words_per_minute
    if word_count <= 0:
        return 0
    return max(1, math.ceil(word_count / wpm))


def build_result(markdown: str, layers_tried: int) -> ScrapeResult:
    words = count_words(markdown)
    return ScrapeResult(
        markdown=markdown,
        layers_tried=layers_tried,
        word_count=words,
        read_time=estimate_read_time(words),
    )
