"""Parse cache management commands."""

import typer

from ..cache import ParseCache
from . import app
from ._common import console, get_config


def _open_cache(ctx: typer.Context) -> ParseCache:
    config = get_config(ctx)
    return ParseCache(
        cache_dir=config.cache_dir,
        ttl_hours=config.cache_ttl_hours,
        enabled=config.cache_enabled,
    )


@app.command("cache-info")
def cache_info(ctx: typer.Context):
    """Show parse cache location and size."""
    cache = _open_cache(ctx)
    try:
        stats = cache.stats()
    finally:
        cache.close()

    console.print("[bold cyan]dephistory parse cache[/bold cyan]")
    console.print()
    if stats.get("enabled"):
        console.print("Status: [green]Enabled[/green]")
        console.print(f"Directory: [blue]{stats.get('directory', 'N/A')}[/blue]")
        console.print(f"Entries: [yellow]{stats.get('size', 0)}[/yellow]")
        console.print(f"Size: [yellow]{stats.get('volume', 0)} bytes[/yellow]")
    else:
        console.print("Status: [red]Disabled[/red]")


@app.command("cache-clear")
def cache_clear(ctx: typer.Context):
    """Drop every cached parse result."""
    if not get_config(ctx).cache_enabled:
        console.print("[yellow]Cache is disabled[/yellow]")
        raise typer.Exit(0)

    cache = _open_cache(ctx)
    try:
        cache.clear()
    finally:
        cache.close()
    console.print("[green]Cache cleared[/green]")
