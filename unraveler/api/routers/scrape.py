"""Scrape endpoints — one-shot JSON and live SSE progress.

Routes
------
POST /scrape           Body: {"url": "..."}   → ScrapeResponse (502 if all layers fail)
POST /scrape/stream    Body: {"url": "..."}   → text/event-stream

SSE event format
----------------
Each event is a JSON-encoded object on the ``data:`` line::

    data: {"event": "layers", "layers": [{"index": 1, "name": "AllOrigins", "state": "trying"}, ...]}

    data: {"event": "done", "markdown": "...", "layers_tried": 3, ...}

    data: {"event": "error", "detail": "...", "layers": [...]}
"""

from __future__ import annotations

import asyncio
import json
from concurrent.futures import ThreadPoolExecutor
from typing import Any, AsyncIterator

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from unraveler.history import add_entry, derive_title
from unraveler.scraper import (
    FAILURE_MESSAGE,
    AllLayersFailedError,
    LayerSnapshot,
    ScrapeResult,
    scrape_url,
)
from unraveler.urls import normalise_url

router = APIRouter()

# Each stream runs its pipeline on one of these threads.
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="scrape")


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ScrapeRequest(BaseModel):
    url: str


class LayerModel(BaseModel):
    index: int
    name: str
    state: str


class ScrapeResponse(BaseModel):
    url: str
    title: str
    markdown: str
    layers_tried: int
    word_count: int
    read_time: int
    layers: list[LayerModel]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _sse(payload: dict[str, Any]) -> str:
    """Format a payload dict as a single SSE ``data:`` line."""
    return f"data: {json.dumps(payload)}\n\n"


def _layers_payload(layers: LayerSnapshot) -> list[dict[str, Any]]:
    return [layer.to_dict() for layer in layers]


def _valid_url(raw: str) -> str:
    try:
        return normalise_url(raw)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _result_payload(url: str, result: ScrapeResult, layers: LayerSnapshot) -> dict[str, Any]:
    """Record the scrape in history and build the response body."""
    title = derive_title(result.markdown, url)
    add_entry(url, title)
    return {
        "url": url,
        "title": title,
        "markdown": result.markdown,
        "layers_tried": result.layers_tried,
        "word_count": result.word_count,
        "read_time": result.read_time,
        "layers": _layers_payload(layers),
    }


# ---------------------------------------------------------------------------
# Background runner
# ---------------------------------------------------------------------------

def _run_pipeline(
    url: str,
    queue: "asyncio.Queue[str | None]",
    loop: asyncio.AbstractEventLoop,
) -> None:
    """Run the pipeline and push SSE-formatted strings into *queue*.

    Runs in the ThreadPoolExecutor.  A ``None`` sentinel is enqueued when the
    run finishes (success or error) so the async generator knows to stop.
    """
    def _put(payload: dict[str, Any]) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, _sse(payload))

    last: list[LayerSnapshot] = [()]

    def _on_progress(layers: LayerSnapshot) -> None:
        last[0] = layers
        _put({"event": "layers", "layers": _layers_payload(layers)})

    try:
        result = scrape_url(url, _on_progress)
        _put({"event": "done", **_result_payload(url, result, last[0])})
    except AllLayersFailedError as exc:
        _put({"event": "error", "detail": FAILURE_MESSAGE, "layers": _layers_payload(exc.layers)})
    except Exception as exc:  # noqa: BLE001
        _put({"event": "error", "detail": str(exc), "layers": _layers_payload(last[0])})
    finally:
        loop.call_soon_threadsafe(queue.put_nowait, None)  # sentinel


async def _scrape_sse_generator(url: str) -> AsyncIterator[str]:
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[str | None] = asyncio.Queue()

    future = loop.run_in_executor(_executor, _run_pipeline, url, queue, loop)

    try:
        while True:
            item = await queue.get()
            if item is None:
                break
            yield item
    finally:
        await asyncio.shield(future)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("", response_model=ScrapeResponse)
def scrape(body: ScrapeRequest) -> dict[str, Any]:
    """Scrape a URL through every layer in turn and return clean Markdown."""
    url = _valid_url(body.url)
    last: list[LayerSnapshot] = [()]

    def _on_progress(layers: LayerSnapshot) -> None:
        last[0] = layers

    try:
        result = scrape_url(url, _on_progress)
    except AllLayersFailedError as exc:
        raise HTTPException(status_code=502, detail=FAILURE_MESSAGE) from exc
    return _result_payload(url, result, last[0])


@router.post("/stream")
async def scrape_stream(body: ScrapeRequest) -> StreamingResponse:
    """Scrape a URL and stream every layer transition as SSE.

    - ``layers`` — emitted after each transition with the full layer list.
    - ``done``   — emitted once with the finished result.
    - ``error``  — emitted if every layer failed.
    """
    url = _valid_url(body.url)
    return StreamingResponse(
        _scrape_sse_generator(url),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",   # disable nginx proxy buffering
        },
    )
