"""Layered scrape pipeline: try each acquisition layer until one yields real content.

``ScrapePipeline.run`` walks the configured layers strictly in order, one at a
time.  Each layer gets a single attempt bounded by its own timeout; a
transport error, timeout or validator rejection marks that layer ``failed``
and the next one is tried.  The first accepted payload is normalised to
Markdown and returned immediately, so later layers stay ``pending``.

Progress is reported through an optional callback that receives a fresh,
immutable snapshot of every layer's status after each transition.  It is
called synchronously from the thread running the pipeline.

Per-layer diagnostic lines are printed to stderr; stdout is left to the caller.
"""

from __future__ import annotations

import sys
from typing import Callable, List, Optional, Sequence

from unraveler.scraper.models import LayerSnapshot, LayerState, LayerStatus, ScrapeResult
from unraveler.scraper.normalizer import normalize
from unraveler.scraper.result import build_result
from unraveler.scraper.strategies import Strategy, build_default_strategies
from unraveler.scraper.validators import accepts

ProgressCallback = Callable[[LayerSnapshot], None]

FAILURE_MESSAGE = (
    "All 8 scraping layers failed — including Google Cache, Wayback Machine, "
    "Jina AI, and 12ft.io bypass. The site enforces strict bot protection."
)


class AllLayersFailedError(RuntimeError):
    """Every layer failed or was rejected for the requested URL."""

    def __init__(self, layers: LayerSnapshot) -> None:
        self.layers = layers
        names = ", ".join(layer.name for layer in layers)
        super().__init__(f"All {len(layers)} layers failed: {names}")


class ScrapePipeline:
    """Ordered cascade of acquisition layers.

    The pipeline holds no per-run state, so one instance can serve any number
    of concurrent ``run`` calls.
    """

    def __init__(self, strategies: Optional[Sequence[Strategy]] = None) -> None:
        self._strategies: List[Strategy] = (
            list(strategies) if strategies is not None else build_default_strategies()
        )

    def run(self, url: str, on_progress: Optional[ProgressCallback] = None) -> ScrapeResult:
        """Scrape *url* and return the first accepted layer's Markdown.

        Raises:
            AllLayersFailedError: If no layer produced acceptable content.
        """
        layers = [
            LayerStatus(index=i, name=s.name)
            for i, s in enumerate(self._strategies, start=1)
        ]

        def _update(pos: int, state: LayerState) -> None:
            layers[pos] = layers[pos].with_state(state)
            if on_progress is not None:
                on_progress(tuple(layers))

        for pos, strategy in enumerate(self._strategies):
            index = pos + 1
            _update(pos, LayerState.TRYING)

            try:
                candidate = strategy.fetch(url)
            except Exception as exc:  # noqa: BLE001
                print(f"[{strategy.name}] ✗ {exc!r:.120}", file=sys.stderr)
                _update(pos, LayerState.FAILED)
                continue

            if not accepts(candidate, strategy.min_length):
                print(f"[{strategy.name}] ✗ rejected {len(candidate.body)} char(s) of {candidate.kind.value}.", file=sys.stderr)
                _update(pos, LayerState.FAILED)
                continue

            _update(pos, LayerState.SUCCESS)
            markdown = normalize(candidate, url, index)
            print(f"[{strategy.name}] ✓ layer {index} accepted.", file=sys.stderr)
            return build_result(markdown, index)

        print(f"[pipeline] all {len(layers)} layers exhausted for {url!r}.", file=sys.stderr)
        raise AllLayersFailedError(tuple(layers))


def scrape_url(url: str, on_progress: Optional[ProgressCallback] = None) -> ScrapeResult:
    """Run the default eight-layer pipeline against *url*."""
    return ScrapePipeline().run(url, on_progress)
