"""FastAPI application factory.

Lifespan
--------
On startup the app makes sure the workspace directory (where the scrape
history lives) exists.

Routers
-------
    /scrape    — run the layered pipeline (JSON or SSE streaming)
    /history   — recent successful scrapes
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from unraveler import __version__
from unraveler.config import settings
from unraveler.api.routers import history as history_router
from unraveler.api.routers import scrape as scrape_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings.ensure_workspace()
    yield


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="Site Unraveler API",
        description=(
            "Fetch any web page through an eight-layer cascade of proxies, "
            "reader, cache and archive services and return it as clean Markdown."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(scrape_router.router, prefix="/scrape", tags=["scrape"])
    app.include_router(history_router.router, prefix="/history", tags=["history"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn unraveler.api.app:app --reload
app = create_app()
