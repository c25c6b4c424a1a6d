"""Acquisition layers — independent ways of getting a page's content.

Layer priority (cheapest and fastest first):
  1. AllOrigins      — JSON envelope proxy; HTML in ``contents``.
  2. ThingProxy      — raw HTML read-through proxy.
  3. CodeTabs        — raw HTML read-through proxy.
  4. Jina Reader     — renders JavaScript, returns Markdown-like text.
  5. Google Cache    — search-engine cached copy, relayed through AllOrigins.
  6. Wayback Machine — latest archive.org snapshot, relayed through AllOrigins.
  7. 12ft.io         — paywall bypass renderer, relayed through AllOrigins.
  8. AllOrigins Raw  — last-resort retry of the AllOrigins family.

Every layer shares one interface: ``fetch(url) -> CandidateContent``.  A layer
signals failure by raising :class:`StrategyError` (or letting an
``httpx.HTTPError`` escape); it never decides whether the content is good
enough.  That is the validators' job.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Optional
from urllib.parse import quote

import httpx

from unraveler.config import settings
from unraveler.scraper.models import CandidateContent, ContentKind

ALLORIGINS_GET = "https://api.allorigins.win/get"
ALLORIGINS_RAW = "https://api.allorigins.win/raw"
THINGPROXY_FETCH = "https://thingproxy.freeboard.io/fetch/"
CODETABS_PROXY = "https://api.codetabs.com/v1/proxy"
JINA_READER = "https://r.jina.ai/"
GOOGLE_CACHE = "https://webcache.googleusercontent.com/search?q=cache:"
WAYBACK_AVAILABLE = "https://archive.org/wayback/available"
TWELVE_FT_PROXY = "https://12ft.io/proxy?q="


class StrategyError(Exception):
    """A layer could not produce a payload (bad status, empty body, no snapshot …)."""


# ---------------------------------------------------------------------------
# Shared hop helpers
# ---------------------------------------------------------------------------

def _check(resp: httpx.Response) -> httpx.Response:
    if not resp.is_success:
        raise StrategyError(f"HTTP {resp.status_code}")
    return resp


def _require_body(text: Optional[str]) -> str:
    if not text or not text.strip():
        raise StrategyError("empty response body")
    return text


def _get(client: httpx.Client, url: str, deadline: float, **kwargs: Any) -> httpx.Response:
    """GET *url* and read the whole body before the monotonic *deadline*.

    httpx timeouts bound each connect or read separately, so a server that
    keeps trickling bytes never trips them.  The body is streamed and the
    deadline checked after every chunk instead.
    """
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise StrategyError("time budget spent")
    with client.stream("GET", url, timeout=remaining, **kwargs) as resp:
        _check(resp)
        chunks = []
        for chunk in resp.iter_raw():
            chunks.append(chunk)
            if time.monotonic() > deadline:
                raise StrategyError("time budget spent reading body")
        return httpx.Response(
            resp.status_code,
            headers=resp.headers,
            content=b"".join(chunks),
            request=resp.request,
        )


def _fetch_via_allorigins(client: httpx.Client, target: str, deadline: float) -> str:
    """Fetch *target* through the AllOrigins JSON envelope and return ``contents``.

    AllOrigins reports the status it got from *target* inside the envelope;
    an upstream 4xx/5xx is a failure even though the envelope itself is 200.
    """
    resp = _get(client, ALLORIGINS_GET, deadline, params={"url": target})
    try:
        data = resp.json()
    except ValueError as exc:
        raise StrategyError("malformed JSON envelope") from exc
    if not isinstance(data, dict):
        raise StrategyError("malformed JSON envelope")

    upstream = (data.get("status") or {}).get("http_code")
    if isinstance(upstream, int) and upstream >= 400:
        raise StrategyError(f"upstream HTTP {upstream}")
    return _require_body(data.get("contents"))


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class Strategy(ABC):
    """Abstract base class for a single acquisition layer."""

    kind: ContentKind = ContentKind.HTML

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable layer name."""

    @property
    def timeout(self) -> float:
        """Budget in seconds for one attempt of this layer."""
        return settings.proxy_timeout

    @property
    def min_length(self) -> int:
        """Payloads of this many characters or fewer are rejected."""
        return settings.min_html_length

    def _client(self) -> httpx.Client:
        return httpx.Client(
            headers={"User-Agent": settings.user_agent},
            timeout=self.timeout,
            follow_redirects=True,
        )

    def _deadline(self) -> float:
        """Monotonic time by which this attempt must have its whole payload."""
        return time.monotonic() + self.timeout

    @abstractmethod
    def fetch(self, url: str) -> CandidateContent:
        """Return the raw payload for *url*.  Raise on any failure."""


class RawProxyStrategy(Strategy):
    """A read-through proxy that answers with the target's HTML as its body."""

    @abstractmethod
    def request_args(self, url: str) -> tuple[str, dict[str, str]]:
        """Return ``(endpoint, query params)`` for proxying *url*."""

    def fetch(self, url: str) -> CandidateContent:
        endpoint, params = self.request_args(url)
        with self._client() as client:
            resp = _get(client, endpoint, self._deadline(), params=params or None)
            return CandidateContent(_require_body(resp.text), self.kind)


class RelayStrategy(Strategy):
    """A third-party service reached through the AllOrigins envelope."""

    @property
    def timeout(self) -> float:
        return settings.relay_timeout

    @property
    def min_length(self) -> int:
        return settings.min_relay_length

    @abstractmethod
    def relay_target(self, url: str) -> str:
        """Return the service URL that serves *url*'s content."""

    def fetch(self, url: str) -> CandidateContent:
        with self._client() as client:
            body = _fetch_via_allorigins(client, self.relay_target(url), self._deadline())
        return CandidateContent(body, self.kind)


# ---------------------------------------------------------------------------
# Layers 1–3: direct proxies
# ---------------------------------------------------------------------------

class AllOriginsStrategy(Strategy):
    @property
    def name(self) -> str:
        return "AllOrigins"

    def fetch(self, url: str) -> CandidateContent:
        with self._client() as client:
            return CandidateContent(_fetch_via_allorigins(client, url, self._deadline()), self.kind)


class ThingProxyStrategy(RawProxyStrategy):
    @property
    def name(self) -> str:
        return "ThingProxy"

    def request_args(self, url: str) -> tuple[str, dict[str, str]]:
        return THINGPROXY_FETCH + url, {}


class CodeTabsStrategy(RawProxyStrategy):
    @property
    def name(self) -> str:
        return "CodeTabs"

    def request_args(self, url: str) -> tuple[str, dict[str, str]]:
        return CODETABS_PROXY, {"quest": url}


# ---------------------------------------------------------------------------
# Layer 4: reader / rendering service
# ---------------------------------------------------------------------------

class JinaReaderStrategy(Strategy):
    """Jina AI reader: runs the page's JavaScript and returns extracted text.

    The only layer that can see content a single-page app renders client-side.
    """

    kind = ContentKind.TEXT

    @property
    def name(self) -> str:
        return "Jina Reader"

    @property
    def timeout(self) -> float:
        return settings.reader_timeout

    @property
    def min_length(self) -> int:
        return settings.min_reader_text

    def fetch(self, url: str) -> CandidateContent:
        headers = {
            "Accept": "text/markdown,text/plain,*/*",
            "X-Return-Format": "markdown",
            "X-Timeout": str(settings.reader_wait_seconds),
        }
        with self._client() as client:
            resp = _get(client, JINA_READER + url, self._deadline(), headers=headers)
            return CandidateContent(_require_body(resp.text), self.kind)


# ---------------------------------------------------------------------------
# Layers 5–7: cache, archive and bypass relays
# ---------------------------------------------------------------------------

class GoogleCacheStrategy(RelayStrategy):
    @property
    def name(self) -> str:
        return "Google Cache"

    def relay_target(self, url: str) -> str:
        return GOOGLE_CACHE + quote(url, safe="")


class WaybackStrategy(Strategy):
    """Latest Wayback Machine snapshot, fetched through AllOrigins.

    Both hops share one deadline so the layer as a whole stays within
    :attr:`timeout`.
    """

    @property
    def name(self) -> str:
        return "Wayback Machine"

    @property
    def timeout(self) -> float:
        return settings.relay_timeout

    @property
    def min_length(self) -> int:
        return settings.min_relay_length

    def _snapshot_url(self, client: httpx.Client, url: str, deadline: float) -> str:
        resp = _get(client, WAYBACK_AVAILABLE, deadline, params={"url": url})
        try:
            data = resp.json()
        except ValueError as exc:
            raise StrategyError("malformed availability response") from exc
        if not isinstance(data, dict):
            raise StrategyError("malformed availability response")
        closest = (data.get("archived_snapshots") or {}).get("closest") or {}
        snapshot = closest.get("url")
        if not closest.get("available") or not snapshot:
            raise StrategyError("no archived snapshot")
        if snapshot.startswith("http://"):
            snapshot = "https://" + snapshot[len("http://"):]
        return snapshot

    def fetch(self, url: str) -> CandidateContent:
        deadline = self._deadline()
        with self._client() as client:
            snapshot = self._snapshot_url(client, url, deadline)
            if time.monotonic() >= deadline:
                raise StrategyError("time budget spent resolving snapshot")
            body = _fetch_via_allorigins(client, snapshot, deadline)
        return CandidateContent(body, self.kind)


class TwelveFtStrategy(RelayStrategy):
    @property
    def name(self) -> str:
        return "12ft.io"

    def relay_target(self, url: str) -> str:
        return TWELVE_FT_PROXY + quote(url, safe="")


# ---------------------------------------------------------------------------
# Layer 8: last resort
# ---------------------------------------------------------------------------

class AllOriginsRawStrategy(RawProxyStrategy):
    @property
    def name(self) -> str:
        return "AllOrigins Raw"

    def request_args(self, url: str) -> tuple[str, dict[str, str]]:
        return ALLORIGINS_RAW, {"url": url}


# ---------------------------------------------------------------------------
# Default layer list
# ---------------------------------------------------------------------------

def build_default_strategies() -> list[Strategy]:
    """All eight layers in priority order."""
    return [
        AllOriginsStrategy(),
        ThingProxyStrategy(),
        CodeTabsStrategy(),
        JinaReaderStrategy(),
        GoogleCacheStrategy(),
        WaybackStrategy(),
        TwelveFtStrategy(),
        AllOriginsRawStrategy(),
    ]
