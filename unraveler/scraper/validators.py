"""Content heuristics deciding whether a layer's payload is a real page.

Every check here is a pure function of its input.  The pipeline treats a
rejection exactly like a transport failure and moves on to the next layer.
"""

from __future__ import annotations

import re
from typing import Optional

from bs4 import BeautifulSoup

from unraveler.config import settings
from unraveler.scraper.models import CandidateContent, ContentKind

# ---------------------------------------------------------------------------
# SPA / empty application shell heuristics
# ---------------------------------------------------------------------------
_SHELL_NOISE_TAGS = ["script", "style", "meta", "link", "noscript", "template"]

# Conventional mount-point ids used by client-rendered frameworks.
_MOUNT_IDS = {"root", "app", "__next", "__nuxt", "svelte", "ember-application"}

# Attributes frameworks leave on the element they hydrate into.
_HYDRATION_ATTRS = ("data-reactroot", "data-v-app", "ng-app", "ng-version")

# ---------------------------------------------------------------------------
# Bot-wall heuristics (reader service output)
# ---------------------------------------------------------------------------
_BOT_WALL_MARKERS = (
    "warning: target url returned error",
    "captcha",
    "403: forbidden",
    "403 forbidden",
    "access denied",
    "are you a robot",
    "verify you are human",
)

_READER_HEADER_LINE = re.compile(
    r"^(?:title:|url source:|published time:|markdown content:|[=\-]{3,}\s*$|\s*$)",
    re.IGNORECASE,
)


def has_min_length(text: str, threshold: int) -> bool:
    """Return ``True`` if stripped *text* is strictly longer than *threshold* characters."""
    return len(text.strip()) > threshold


def _is_empty_mount(tag) -> bool:  # type: ignore[no-untyped-def]
    if tag.get_text(strip=True):
        return False
    if tag.get("id") in _MOUNT_IDS:
        return True
    return any(tag.has_attr(attr) for attr in _HYDRATION_ATTRS)


def is_spa_shell(html: str, min_visible: Optional[int] = None) -> bool:
    """Return ``True`` if *html* is a client-side app shell with no readable text.

    Scripts, styles and head metadata are removed before measuring the
    visible text, so a large JS bundle does not count as content.
    """
    if min_visible is None:
        min_visible = settings.min_visible_text

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_SHELL_NOISE_TAGS):
        tag.decompose()

    visible = " ".join(soup.get_text(separator=" ").split())
    if len(visible) < min_visible:
        return True

    return any(_is_empty_mount(tag) for tag in soup.find_all(True))


def _strip_reader_header(text: str) -> str:
    """Drop the ``Title:`` / ``URL Source:`` preamble the reader service emits."""
    lines = text.strip().splitlines()
    start = 0
    while start < len(lines) and _READER_HEADER_LINE.match(lines[start]):
        start += 1
    return "\n".join(lines[start:]).strip()


def is_bot_wall(text: str, min_length: Optional[int] = None) -> bool:
    """Return ``True`` if reader-service *text* is an error page or bot challenge."""
    if min_length is None:
        min_length = settings.min_reader_text

    if not has_min_length(text, min_length):
        return True

    lowered = text.lower()
    if any(marker in lowered for marker in _BOT_WALL_MARKERS):
        return True

    return not has_min_length(_strip_reader_header(text), min_length)


def accepts(candidate: CandidateContent, min_length: int) -> bool:
    """Apply the checks appropriate for *candidate*'s kind.

    HTML payloads must clear *min_length* and must not be an app shell.
    Reader text is screened by the bot-wall detector instead.
    """
    if candidate.kind is ContentKind.TEXT:
        return not is_bot_wall(candidate.body)
    if not has_min_length(candidate.body, min_length):
        return False
    return not is_spa_shell(candidate.body)
