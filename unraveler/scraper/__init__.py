"""Scraper package — layered retrieval, validation and Markdown conversion."""

from unraveler.scraper.models import (
    CandidateContent,
    ContentKind,
    LayerSnapshot,
    LayerState,
    LayerStatus,
    ScrapeResult,
)
from unraveler.scraper.pipeline import (
    FAILURE_MESSAGE,
    AllLayersFailedError,
    ScrapePipeline,
    scrape_url,
)
from unraveler.scraper.strategies import StrategyError, build_default_strategies

__all__ = [
    "scrape_url",
    "ScrapePipeline",
    "AllLayersFailedError",
    "FAILURE_MESSAGE",
    "StrategyError",
    "build_default_strategies",
    "CandidateContent",
    "ContentKind",
    "LayerSnapshot",
    "LayerState",
    "LayerStatus",
    "ScrapeResult",
]
