"""CLI entry point: registers all subcommands."""

from pathlib import Path
from typing import Optional

import click
import typer

from .. import __version__
from ..config import load_config
from ..exceptions import DepHistoryError
from ..logging_config import setup_logging
from ._common import console

app = typer.Typer(
    name="dephistory",
    help="dephistory - Dependency history auditing across repositories",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    store: Optional[str] = typer.Option(
        None,
        "--store",
        help="Document store backend",
        click_type=click.Choice(["sqlite", "memory"], case_sensitive=False),
    ),
    store_path: Optional[str] = typer.Option(
        None, "--store-path", help="SQLite database file (default: .dephistory/store.db)"
    ),
    workers: Optional[int] = typer.Option(
        None, "-w", "--workers", help="Worker threads per pipeline stage", min=1, max=64
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable the manifest parse cache"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to this file"),
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
):
    """
    Track the declared dependencies of many repositories over time.

    [bold cyan]Examples:[/bold cyan]

      dephistory scan .

      dephistory ingest org/repo 3f2c1e... --ref refs/heads/master

      dephistory report-ref refs/heads/master --org org
    """
    if version:
        console.print(f"[bold cyan]dephistory[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)

    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    ctx.ensure_object(dict)
    if "config" in ctx.obj:
        return
    try:
        ctx.obj["config"] = load_config(
            config_file=config,
            store_backend=store,
            store_path=store_path,
            workers=workers,
            cache_enabled=False if no_cache else None,
            verbose=verbose,
            quiet=quiet,
        )
    except DepHistoryError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)


# Import subcommands to register them
from .ingest import backfill as _backfill, ingest as _ingest, scan as _scan  # noqa: F401, E402
from .ingest import tags as _tags, webhook as _webhook  # noqa: F401, E402
from .report import report as _report, report_ref as _report_ref  # noqa: F401, E402
from .report import report_tag as _report_tag, search as _search  # noqa: F401, E402
from .history import history as _history, layout as _layout  # noqa: F401, E402
from .diff import diff as _diff, differences as _differences  # noqa: F401, E402
from .cache import cache_clear as _cache_clear, cache_info as _cache_info  # noqa: F401, E402
