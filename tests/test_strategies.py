"""Tests for the eight acquisition layers.

Mocking strategy:
- ``respx`` patches ``httpx`` at the transport layer so no real network calls
  are made.  Each test registers only the routes its layer should hit.
- Layers never judge content quality; they only succeed with a non-empty
  payload or raise.  Rejection is covered in ``test_validators.py``.
"""

from __future__ import annotations

import time
from types import SimpleNamespace
from urllib.parse import quote

import httpx
import pytest
import respx

from unraveler.config import settings
from unraveler.scraper import strategies
from unraveler.scraper.models import ContentKind
from unraveler.scraper.strategies import (
    ALLORIGINS_GET,
    ALLORIGINS_RAW,
    CODETABS_PROXY,
    WAYBACK_AVAILABLE,
    AllOriginsRawStrategy,
    AllOriginsStrategy,
    CodeTabsStrategy,
    GoogleCacheStrategy,
    JinaReaderStrategy,
    StrategyError,
    ThingProxyStrategy,
    TwelveFtStrategy,
    WaybackStrategy,
    build_default_strategies,
)

_URL = "https://example.com/article"
_HTML = "<html><body><article><p>Readable article body.</p></article></body></html>"


def _trickle(chunks: list[bytes], delay: float):
    """Yield *chunks* one at a time, pausing *delay* seconds before each."""
    for chunk in chunks:
        time.sleep(delay)
        yield chunk


def _envelope(contents: str | None, http_code: int = 200) -> dict:
    return {"contents": contents, "status": {"url": _URL, "http_code": http_code}}


# ---------------------------------------------------------------------------
# Layer list
# ---------------------------------------------------------------------------

class TestDefaultStrategies:
    def test_order(self) -> None:
        names = [s.name for s in build_default_strategies()]
        assert names == [
            "AllOrigins",
            "ThingProxy",
            "CodeTabs",
            "Jina Reader",
            "Google Cache",
            "Wayback Machine",
            "12ft.io",
            "AllOrigins Raw",
        ]

    def test_timeouts_per_layer_family(self) -> None:
        layers = build_default_strategies()
        assert layers[0].timeout == settings.proxy_timeout
        assert layers[3].timeout == settings.reader_timeout
        assert layers[5].timeout == settings.relay_timeout
        assert layers[7].timeout == settings.proxy_timeout
        assert settings.proxy_timeout < settings.relay_timeout < settings.reader_timeout

    def test_thresholds_per_layer_family(self) -> None:
        layers = build_default_strategies()
        assert layers[1].min_length == settings.min_html_length
        assert layers[4].min_length == settings.min_relay_length

    def test_only_reader_returns_text(self) -> None:
        kinds = [s.kind for s in build_default_strategies()]
        assert kinds.count(ContentKind.TEXT) == 1
        assert kinds[3] is ContentKind.TEXT


# ---------------------------------------------------------------------------
# Layer 1 — AllOrigins envelope
# ---------------------------------------------------------------------------

class TestAllOrigins:
    def test_returns_contents(self) -> None:
        with respx.mock:
            respx.get(ALLORIGINS_GET, params={"url": _URL}).mock(
                return_value=httpx.Response(200, json=_envelope(_HTML))
            )
            candidate = AllOriginsStrategy().fetch(_URL)

        assert candidate.body == _HTML
        assert candidate.kind is ContentKind.HTML

    def test_sends_browser_user_agent(self) -> None:
        with respx.mock:
            route = respx.get(ALLORIGINS_GET).mock(
                return_value=httpx.Response(200, json=_envelope(_HTML))
            )
            AllOriginsStrategy().fetch(_URL)

        assert route.calls.last.request.headers["User-Agent"] == settings.user_agent

    def test_http_error_raises(self) -> None:
        with respx.mock:
            respx.get(ALLORIGINS_GET).mock(return_value=httpx.Response(500))
            with pytest.raises(StrategyError, match="HTTP 500"):
                AllOriginsStrategy().fetch(_URL)

    def test_upstream_error_raises(self) -> None:
        with respx.mock:
            respx.get(ALLORIGINS_GET).mock(
                return_value=httpx.Response(200, json=_envelope("Not Found", http_code=404))
            )
            with pytest.raises(StrategyError, match="upstream HTTP 404"):
                AllOriginsStrategy().fetch(_URL)

    def test_missing_contents_raises(self) -> None:
        with respx.mock:
            respx.get(ALLORIGINS_GET).mock(
                return_value=httpx.Response(200, json=_envelope(None))
            )
            with pytest.raises(StrategyError):
                AllOriginsStrategy().fetch(_URL)

    def test_malformed_json_raises(self) -> None:
        with respx.mock:
            respx.get(ALLORIGINS_GET).mock(
                return_value=httpx.Response(200, text="<html>not json</html>")
            )
            with pytest.raises(StrategyError, match="malformed"):
                AllOriginsStrategy().fetch(_URL)

    def test_timeout_propagates(self) -> None:
        with respx.mock:
            respx.get(ALLORIGINS_GET).mock(side_effect=httpx.ReadTimeout("timed out"))
            with pytest.raises(httpx.TimeoutException):
                AllOriginsStrategy().fetch(_URL)


# ---------------------------------------------------------------------------
# Layers 2, 3, 8 — raw proxies
# ---------------------------------------------------------------------------

class TestRawProxies:
    def test_thingproxy_path_style(self) -> None:
        with respx.mock:
            respx.get("https://thingproxy.freeboard.io/fetch/" + _URL).mock(
                return_value=httpx.Response(200, text=_HTML)
            )
            candidate = ThingProxyStrategy().fetch(_URL)

        assert candidate.body == _HTML

    def test_codetabs_query_style(self) -> None:
        with respx.mock:
            respx.get(CODETABS_PROXY, params={"quest": _URL}).mock(
                return_value=httpx.Response(200, text=_HTML)
            )
            candidate = CodeTabsStrategy().fetch(_URL)

        assert candidate.body == _HTML

    def test_allorigins_raw(self) -> None:
        with respx.mock:
            respx.get(ALLORIGINS_RAW, params={"url": _URL}).mock(
                return_value=httpx.Response(200, text=_HTML)
            )
            candidate = AllOriginsRawStrategy().fetch(_URL)

        assert candidate.body == _HTML

    def test_empty_body_raises(self) -> None:
        with respx.mock:
            respx.get(CODETABS_PROXY).mock(return_value=httpx.Response(200, text="   "))
            with pytest.raises(StrategyError, match="empty"):
                CodeTabsStrategy().fetch(_URL)

    def test_forbidden_raises(self) -> None:
        with respx.mock:
            respx.get(ALLORIGINS_RAW).mock(return_value=httpx.Response(403, text="Forbidden"))
            with pytest.raises(StrategyError, match="HTTP 403"):
                AllOriginsRawStrategy().fetch(_URL)


# ---------------------------------------------------------------------------
# Layer 4 — Jina Reader
# ---------------------------------------------------------------------------

class TestJinaReader:
    def test_returns_text_and_requests_markdown(self) -> None:
        with respx.mock:
            route = respx.get("https://r.jina.ai/" + _URL).mock(
                return_value=httpx.Response(200, text="Title: Example\n\nBody")
            )
            candidate = JinaReaderStrategy().fetch(_URL)

        assert candidate.kind is ContentKind.TEXT
        assert candidate.body.startswith("Title: Example")
        request = route.calls.last.request
        assert request.headers["X-Return-Format"] == "markdown"
        assert "text/markdown" in request.headers["Accept"]
        assert request.headers["X-Timeout"] == str(settings.reader_wait_seconds)


# ---------------------------------------------------------------------------
# Layers 5–7 — relays through AllOrigins
# ---------------------------------------------------------------------------

class TestRelays:
    def test_google_cache_nests_cache_url(self) -> None:
        cache_url = "https://webcache.googleusercontent.com/search?q=cache:" + quote(_URL, safe="")
        with respx.mock:
            respx.get(ALLORIGINS_GET, params={"url": cache_url}).mock(
                return_value=httpx.Response(200, json=_envelope(_HTML))
            )
            candidate = GoogleCacheStrategy().fetch(_URL)

        assert candidate.body == _HTML

    def test_twelve_ft_nests_proxy_url(self) -> None:
        bypass_url = "https://12ft.io/proxy?q=" + quote(_URL, safe="")
        with respx.mock:
            respx.get(ALLORIGINS_GET, params={"url": bypass_url}).mock(
                return_value=httpx.Response(200, json=_envelope(_HTML))
            )
            candidate = TwelveFtStrategy().fetch(_URL)

        assert candidate.body == _HTML

    def test_inner_hop_failure_maps_to_strategy_error(self) -> None:
        with respx.mock:
            respx.get(ALLORIGINS_GET).mock(
                return_value=httpx.Response(200, json=_envelope("", http_code=502))
            )
            with pytest.raises(StrategyError):
                GoogleCacheStrategy().fetch(_URL)


class TestWayback:
    _SNAPSHOT = "http://web.archive.org/web/20240101000000/https://example.com/article"

    def _availability(self, available: bool = True) -> dict:
        return {
            "url": _URL,
            "archived_snapshots": {
                "closest": {
                    "status": "200",
                    "available": available,
                    "url": self._SNAPSHOT,
                    "timestamp": "20240101000000",
                }
            },
        }

    def test_resolves_then_fetches_snapshot_over_https(self) -> None:
        https_snapshot = self._SNAPSHOT.replace("http://", "https://", 1)
        with respx.mock:
            lookup = respx.get(WAYBACK_AVAILABLE, params={"url": _URL}).mock(
                return_value=httpx.Response(200, json=self._availability())
            )
            fetch = respx.get(ALLORIGINS_GET, params={"url": https_snapshot}).mock(
                return_value=httpx.Response(200, json=_envelope(_HTML))
            )
            candidate = WaybackStrategy().fetch(_URL)

        assert candidate.body == _HTML
        assert lookup.called and fetch.called

    def test_no_snapshot_fails_without_second_hop(self) -> None:
        with respx.mock:
            respx.get(WAYBACK_AVAILABLE).mock(
                return_value=httpx.Response(200, json={"url": _URL, "archived_snapshots": {}})
            )
            with pytest.raises(StrategyError, match="no archived snapshot"):
                WaybackStrategy().fetch(_URL)

    def test_unavailable_snapshot_fails(self) -> None:
        with respx.mock:
            respx.get(WAYBACK_AVAILABLE).mock(
                return_value=httpx.Response(200, json=self._availability(available=False))
            )
            with pytest.raises(StrategyError):
                WaybackStrategy().fetch(_URL)

    def test_snapshot_fetch_failure_propagates(self) -> None:
        with respx.mock:
            respx.get(WAYBACK_AVAILABLE).mock(
                return_value=httpx.Response(200, json=self._availability())
            )
            respx.get(ALLORIGINS_GET).mock(return_value=httpx.Response(503))
            with pytest.raises(StrategyError, match="HTTP 503"):
                WaybackStrategy().fetch(_URL)

    def test_non_object_availability_response_raises(self) -> None:
        with respx.mock:
            respx.get(WAYBACK_AVAILABLE).mock(return_value=httpx.Response(200, json=["not", "a", "dict"]))
            with pytest.raises(StrategyError, match="malformed availability"):
                WaybackStrategy().fetch(_URL)

    def test_budget_spent_on_lookup_skips_snapshot_fetch(self, monkeypatch) -> None:
        clock = [1000.0]
        monkeypatch.setattr(strategies, "time", SimpleNamespace(monotonic=lambda: clock[0]))
        resolve = WaybackStrategy._snapshot_url

        def _slow_resolve(self, client, url, deadline):
            snapshot = resolve(self, client, url, deadline)
            clock[0] += settings.relay_timeout
            return snapshot

        monkeypatch.setattr(WaybackStrategy, "_snapshot_url", _slow_resolve)

        with respx.mock(assert_all_called=False) as respx_mock:
            respx_mock.get(WAYBACK_AVAILABLE).mock(return_value=httpx.Response(200, json=self._availability()))
            fetch = respx_mock.get(ALLORIGINS_GET).mock(return_value=httpx.Response(200, json=_envelope(_HTML)))
            with pytest.raises(StrategyError, match="time budget"):
                WaybackStrategy().fetch(_URL)

        assert not fetch.called


# ---------------------------------------------------------------------------
# Per-attempt time budget
# ---------------------------------------------------------------------------

class TestTimeBudget:
    """A server trickling bytes must not keep an attempt alive past its timeout."""

    _CHUNKS = [b"<p>" + b"w" * 47 for _ in range(8)]

    def test_slow_body_aborts_within_budget(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "proxy_timeout", 0.5)
        with respx.mock:
            respx.get(CODETABS_PROXY).mock(
                side_effect=lambda request: httpx.Response(200, content=_trickle(self._CHUNKS, 0.3))
            )
            started = time.monotonic()
            with pytest.raises(StrategyError, match="time budget"):
                CodeTabsStrategy().fetch(_URL)
            elapsed = time.monotonic() - started

        assert elapsed < 1.5

    def test_body_inside_budget_is_returned(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "proxy_timeout", 5.0)
        with respx.mock:
            respx.get(CODETABS_PROXY).mock(
                side_effect=lambda request: httpx.Response(200, content=_trickle(self._CHUNKS, 0.01))
            )
            candidate = CodeTabsStrategy().fetch(_URL)

        assert candidate.body == b"".join(self._CHUNKS).decode()

    def test_wayback_lookup_counts_against_layer_budget(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "relay_timeout", 0.5)
        lookup_body = b'{"archived_snapshots": {}}'
        with respx.mock(assert_all_called=False) as respx_mock:
            respx_mock.get(WAYBACK_AVAILABLE).mock(
                side_effect=lambda request: httpx.Response(
                    200, content=_trickle([lookup_body[i:i + 4] for i in range(0, len(lookup_body), 4)], 0.3)
                )
            )
            fetch = respx_mock.get(ALLORIGINS_GET).mock(return_value=httpx.Response(200, json=_envelope(_HTML)))
            started = time.monotonic()
            with pytest.raises(StrategyError, match="time budget"):
                WaybackStrategy().fetch(_URL)
            elapsed = time.monotonic() - started

        assert elapsed < 1.5
        assert not fetch.called
