"""Data models for the scraping pipeline."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Tuple


class LayerState(str, Enum):
    """Lifecycle of one layer within a single pipeline run."""

    PENDING = "pending"
    TRYING = "trying"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class LayerStatus:
    """Progress record for one configured layer.

    ``index`` is 1-based and matches the layer's position in the pipeline.
    """

    index: int
    name: str
    state: LayerState = LayerState.PENDING

    def with_state(self, state: LayerState) -> LayerStatus:
        return replace(self, state=state)

    def to_dict(self) -> dict[str, object]:
        return {"index": self.index, "name": self.name, "state": self.state.value}


# An ordered, immutable view of every layer's status at one point in time.
LayerSnapshot = Tuple[LayerStatus, ...]


class ContentKind(str, Enum):
    HTML = "html"
    TEXT = "text"


@dataclass(frozen=True)
class CandidateContent:
    """Raw payload returned by a layer, before validation."""

    body: str
    kind: ContentKind = ContentKind.HTML


@dataclass(frozen=True)
class ScrapeResult:
    """Final product of a successful run."""

    markdown: str
    layers_tried: int
    word_count: int
    read_time: int
