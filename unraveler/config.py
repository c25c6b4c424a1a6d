"""Centralised settings for Site Unraveler.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / history
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("UNRAVELER_WORKSPACE", Path.home() / ".unraveler")
        )
    )
    history_limit: int = field(
        default_factory=lambda: int(os.environ.get("HISTORY_LIMIT", "5"))
    )

    @property
    def history_path(self) -> Path:
        """Absolute path to the JSON file holding recent scrapes."""
        return self.workspace_dir / "history.json"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------
    user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "UNRAVELER_USER_AGENT",
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/122.0.0.0 Safari/537.36",
        )
    )

    # ------------------------------------------------------------------
    # Per-layer timeout budgets (seconds)
    # ------------------------------------------------------------------
    proxy_timeout: float = field(
        default_factory=lambda: float(os.environ.get("PROXY_TIMEOUT", "8.0"))
    )
    reader_timeout: float = field(
        default_factory=lambda: float(os.environ.get("READER_TIMEOUT", "20.0"))
    )
    relay_timeout: float = field(
        default_factory=lambda: float(os.environ.get("RELAY_TIMEOUT", "15.0"))
    )
    reader_wait_seconds: int = field(
        default_factory=lambda: int(os.environ.get("READER_WAIT_SECONDS", "10"))
    )

    # ------------------------------------------------------------------
    # Content validation thresholds (characters)
    # ------------------------------------------------------------------
    min_html_length: int = field(
        default_factory=lambda: int(os.environ.get("MIN_HTML_LENGTH", "200"))
    )
    min_relay_length: int = field(
        default_factory=lambda: int(os.environ.get("MIN_RELAY_LENGTH", "300"))
    )
    min_visible_text: int = field(
        default_factory=lambda: int(os.environ.get("MIN_VISIBLE_TEXT", "150"))
    )
    min_reader_text: int = field(
        default_factory=lambda: int(os.environ.get("MIN_READER_TEXT", "100"))
    )

    # ------------------------------------------------------------------
    # Result stats
    # ------------------------------------------------------------------
    words_per_minute: int = field(
        default_factory=lambda: int(os.environ.get("WORDS_PER_MINUTE", "200"))
    )

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton — import this everywhere:
#   from unraveler.config import settings
settings = Settings()
