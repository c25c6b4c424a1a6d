"""Site Unraveler — turn blocked web pages into clean Markdown."""

__version__ = "0.3.0"
