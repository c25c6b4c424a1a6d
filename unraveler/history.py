"""Recent-scrape history.

Stored as a small JSON list in ``<workspace>/history.json``, newest first,
one entry per URL, capped at ``settings.history_limit`` entries.
"""

from __future__ import annotations

import json
import os
import re
import threading
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import List
from urllib.parse import urlparse

from unraveler.config import settings

_H1 = re.compile(r"^#\s+(.+)$", re.MULTILINE)

# Serialises read-modify-write cycles between API worker threads.
_lock = threading.Lock()


@dataclass
class HistoryEntry:
    url: str
    title: str
    timestamp: int  # milliseconds since the epoch

    @classmethod
    def from_dict(cls, raw: dict) -> HistoryEntry:  # type: ignore[type-arg]
        return cls(url=str(raw["url"]), title=str(raw.get("title", "")), timestamp=int(raw["timestamp"]))


def derive_title(markdown: str, url: str) -> str:
    """First level-1 heading in *markdown*, else the host name of *url*."""
    match = _H1.search(markdown)
    if match:
        return match.group(1).strip()
    return urlparse(url).hostname or url


def _get_history_path() -> Path:
    return settings.history_path


def load_history() -> List[HistoryEntry]:
    """Load saved entries, newest first. Returns ``[]`` if missing/corrupt."""
    path = _get_history_path()
    if not path.exists():
        return []
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return [HistoryEntry.from_dict(item) for item in raw]
    except (json.JSONDecodeError, TypeError, KeyError, ValueError):
        return []


def _save(entries: List[HistoryEntry]) -> None:
    """Write *entries* to a sibling temp file, then swap it into place."""
    settings.ensure_workspace()
    path = _get_history_path()
    tmp = path.with_suffix(".json.tmp")
    tmp.write_text(json.dumps([asdict(e) for e in entries], indent=2), encoding="utf-8")
    os.replace(tmp, path)


def add_entry(url: str, title: str) -> List[HistoryEntry]:
    """Record a successful scrape and return the updated history."""
    entry = HistoryEntry(url=url, title=title, timestamp=int(time.time() * 1000))
    with _lock:
        existing = [e for e in load_history() if e.url != url]
        updated = [entry, *existing][: settings.history_limit]
        _save(updated)
    return updated


def clear_history() -> None:
    with _lock:
        _get_history_path().unlink(missing_ok=True)
