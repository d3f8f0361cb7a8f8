"""Cache maintenance commands."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table, box

from respimg.cache import DEFAULT_CACHE_DIRECTORY, CacheStore

cache_app = typer.Typer(help="Inspect or purge the rendered-variant cache.", no_args_is_help=True)

_BYTES_PER_UNIT = 1024


def _format_bytes(size: int) -> str:
    """Format bytes as human-readable."""
    n: float = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(n) < _BYTES_PER_UNIT:
            return f"{n:.1f} {unit}" if unit != "B" else f"{int(n)} {unit}"
        n /= _BYTES_PER_UNIT
    return f"{n:.1f} TB"


def _store(directory: Optional[Path]) -> CacheStore:
    return CacheStore(directory=directory or DEFAULT_CACHE_DIRECTORY)


_DIRECTORY_OPTION = typer.Option(
    None,
    "--cache-dir",
    metavar="PATH",
    help=f"Cache directory (default: {DEFAULT_CACHE_DIRECTORY}).",
)


@cache_app.command("info")
def cache_info(directory: Optional[Path] = _DIRECTORY_OPTION) -> None:
    """List cache entries and their sizes."""

    store = _store(directory)
    entries = store.entries()
    if not entries:
        typer.echo(f"No cache entries in {store.directory}")
        return

    table = Table(box=box.SIMPLE, title=str(store.directory))
    table.add_column("Key")
    table.add_column("Compressed")
    table.add_column("Size", justify="right")
    total = 0
    for path in entries:
        size = path.stat().st_size
        total += size
        table.add_row(path.name.split(".", 1)[0], "yes" if path.suffix == ".gz" else "no", _format_bytes(size))
    Console().print(table)
    typer.echo(f"{len(entries)} entr{'y' if len(entries) == 1 else 'ies'}, {_format_bytes(total)}")


@cache_app.command("purge")
def cache_purge(
    directory: Optional[Path] = _DIRECTORY_OPTION,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Delete every cache entry."""

    store = _store(directory)
    count = len(store.entries())
    if count == 0:
        typer.echo(f"No cache entries in {store.directory}")
        return
    if not yes and not typer.confirm(f"Delete {count} cache entries from {store.directory}?"):
        typer.echo("Aborted.")
        raise typer.Exit(code=1)
    removed = store.purge()
    typer.echo(f"Removed {removed} cache entries.")
