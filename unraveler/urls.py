"""URL helpers shared by the CLI and the HTTP API."""

from __future__ import annotations

import re
from datetime import date
from typing import Optional
from urllib.parse import urlparse

_SCHEME = re.compile(r"^https?://", re.IGNORECASE)


def normalise_url(url: str) -> str:
    """Strip whitespace and prepend ``https://`` when no http(s) scheme is given.

    Raises:
        ValueError: If *url* is empty.
    """
    url = url.strip()
    if not url:
        raise ValueError("URL must not be empty")
    if not _SCHEME.match(url):
        url = "https://" + url
    return url


def suggest_filename(url: str, today: Optional[date] = None) -> str:
    """Download name for a scrape, e.g. ``en-wikipedia-org-2024-05-01.md``."""
    host = urlparse(url).hostname or "page"
    today = today or date.today()
    return f"{host.replace('.', '-')}-{today.isoformat()}.md"
