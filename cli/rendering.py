"""Utilities for rendering scrape progress in the CLI."""

from __future__ import annotations

from functools import partial
from typing import Callable, Dict

import typer

from unraveler.scraper import LayerSnapshot, LayerState, LayerStatus, ScrapeResult

_ICONS = {
    LayerState.PENDING: "·",
    LayerState.TRYING: "…",
    LayerState.SUCCESS: "✓",
    LayerState.FAILED: "✗",
}

_LABELS = {
    LayerState.PENDING: "Pending",
    LayerState.TRYING: "Trying...",
    LayerState.SUCCESS: "Success",
    LayerState.FAILED: "Failed",
}


def format_layer(layer: LayerStatus, total: int) -> str:
    """One log line, e.g. ``  ✗ [2/8] ThingProxy        Failed``."""
    return f"  {_ICONS[layer.state]} [{layer.index}/{total}] {layer.name:<16} {_LABELS[layer.state]}"


def format_stats(result: ScrapeResult) -> str:
    return f"{result.word_count:,} words · {result.read_time} min read"


class LayerLog:
    """Progress callback that echoes each layer transition once.

    The pipeline hands over the full layer list on every transition; only
    entries whose state changed since the previous snapshot are printed, to
    stderr by default.
    """

    def __init__(self, echo: Callable[[str], None] = partial(typer.echo, err=True)) -> None:
        self._echo = echo
        self._seen: Dict[int, LayerState] = {}
        self.last: LayerSnapshot = ()

    def __call__(self, layers: LayerSnapshot) -> None:
        self.last = layers
        for layer in layers:
            if self._seen.get(layer.index, LayerState.PENDING) is layer.state:
                continue
            self._seen[layer.index] = layer.state
            self._echo(format_layer(layer, len(layers)))
