"""Turns an accepted payload into Markdown with a provenance header."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

from bs4 import BeautifulSoup
from markdownify import ATX, markdownify

from unraveler.scraper.models import CandidateContent, ContentKind

# ---------------------------------------------------------------------------
# Selectors
# ---------------------------------------------------------------------------
_NOISE_SELECTORS = [
    "script", "style", "nav", "footer", "header", "aside",
    "iframe", "form", "button", "input", "select", "textarea",
    "noscript", '[role="navigation"]', '[role="banner"]',
    '[role="complementary"]', ".cookie-banner", ".popup",
    ".modal", ".advertisement", ".ad", ".sidebar",
]

# Tried in order; the first match becomes the content root.
_CONTENT_SELECTORS = [
    "article", "main", '[role="main"]',
    ".content", ".post-content", ".entry-content", ".article-body",
    "body",
]

_BLANK_RUN = re.compile(r"\n(?:[ \t]*\n){2,}")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _select_content_html(html: str) -> str:
    """Strip noise elements and return the inner HTML of the best content root."""
    soup = BeautifulSoup(html, "html.parser")
    for selector in _NOISE_SELECTORS:
        for el in soup.select(selector):
            el.decompose()

    for selector in _CONTENT_SELECTORS:
        root = soup.select_one(selector)
        if root is not None:
            return root.decode_contents()
    # Fragments without a <body> fall back to the whole document.
    return soup.decode_contents()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def collapse_blank_lines(markdown: str) -> str:
    """Collapse runs of blank lines to a single blank line and trim the ends."""
    return _BLANK_RUN.sub("\n\n", markdown).strip()


def build_header(url: str, layer: int, scraped_at: Optional[str] = None) -> str:
    """Return the provenance block prepended to every result."""
    scraped_at = scraped_at or _utc_timestamp()
    return f"---\nsource: {url}\nscraped: {scraped_at}\nlayers_tried: {layer}\n---\n\n"


def html_to_markdown(html: str, url: str, layer: int) -> str:
    """Convert page *html* to Markdown, keeping only the main content."""
    body = markdownify(
        _select_content_html(html),
        heading_style=ATX,
        bullets="-",
        code_language="",
    )
    return build_header(url, layer) + collapse_blank_lines(body)


def text_to_markdown(text: str, url: str, layer: int) -> str:
    """Wrap reader-service *text*, which is already Markdown-like, as-is."""
    return build_header(url, layer) + text.strip()


def normalize(candidate: CandidateContent, url: str, layer: int) -> str:
    if candidate.kind is ContentKind.TEXT:
        return text_to_markdown(candidate.body, url, layer)
    return html_to_markdown(candidate.body, url, layer)
