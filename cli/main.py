"""Site Unraveler CLI — entry-point for scraping from the terminal.

Usage:
    python cli/main.py --help

Commands:
    scrape    → run the eight-layer pipeline against a URL
    history   → list or clear recent scrapes
    serve     → start the HTTP API
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from unraveler.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from datetime import datetime
from typing import Optional

import typer

from cli.rendering import LayerLog, format_stats
from unraveler.history import add_entry, clear_history, derive_title, load_history
from unraveler.scraper import FAILURE_MESSAGE, AllLayersFailedError, scrape_url
from unraveler.urls import normalise_url, suggest_filename

app = typer.Typer(
    name="unravel",
    help="Site Unraveler — paste any URL, get clean Markdown.",
    no_args_is_help=True,
)

_FAILURE_HINTS = [
    "The site may use bot protection (Cloudflare, etc.)",
    "CORS restrictions may block proxy fetching",
    "The URL may require authentication or be on a private network",
]


# ---------------------------------------------------------------------------
# Scrape
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    url: str = typer.Argument(..., help="URL to unravel (https:// is added if missing)."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write Markdown to this file."),
    save: bool = typer.Option(False, "--save", help="Write Markdown to <host>-<date>.md in the current directory."),
    history: bool = typer.Option(True, "--history/--no-history", help="Record the URL in the scrape history."),
) -> None:
    """Scrape a URL and print (or save) its content as Markdown.

    Progress goes to stderr, so `unravel scrape URL > page.md` captures only
    the Markdown.
    """
    try:
        url = normalise_url(url)
    except ValueError as exc:
        typer.echo(f"[scrape] {exc}", err=True)
        raise typer.Exit(code=2)

    typer.echo(f"[scrape] Unraveling {url!r} …", err=True)
    log = LayerLog()
    try:
        result = scrape_url(url, log)
    except AllLayersFailedError:
        typer.echo("", err=True)
        typer.echo("❌ Couldn't unravel this URL.", err=True)
        typer.echo(FAILURE_MESSAGE, err=True)
        for hint in _FAILURE_HINTS:
            typer.echo(f"  • {hint}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"[scrape] {format_stats(result)}  (layer {result.layers_tried})", err=True)

    if history:
        add_entry(url, derive_title(result.markdown, url))

    target = output or (Path(suggest_filename(url)) if save else None)
    if target is not None:
        target.write_text(result.markdown, encoding="utf-8")
        typer.echo(f"✅ Saved Markdown to {target}", err=True)
        return

    typer.echo(result.markdown)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------
history_app = typer.Typer(help="Recent scrapes.", no_args_is_help=True)
app.add_typer(history_app, name="history")


@history_app.command("list")
def history_list() -> None:
    """List recent scrapes, newest first."""
    entries = load_history()
    if not entries:
        typer.echo("No history yet. Start scraping!")
        return
    for e in entries:
        when = datetime.fromtimestamp(e.timestamp / 1000).strftime("%Y-%m-%d %H:%M")
        typer.echo(f"  {when}  {e.title or 'Untitled Page'}")
        typer.echo(f"                    {e.url}")


@history_app.command("clear")
def history_clear() -> None:
    """Forget every recorded scrape."""
    clear_history()
    typer.echo("[history] Cleared.")


# ---------------------------------------------------------------------------
# Serve
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind."),
    port: int = typer.Option(8000, help="Port to listen on."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("unraveler.api.app:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
