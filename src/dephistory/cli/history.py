"""History CLI commands -- recorded refs and the commit graph layout."""

import json

import typer
from rich.table import Table

from ..exceptions import NotFoundError
from ..history import compute_layout, mark_scanned
from . import app
from ._common import console, get_config, services, short


@app.command()
def history(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository full name"),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    List the recorded shas of every ref of a repository, newest first.
    """
    svc = services(ctx)
    try:
        record = svc.scans.get_repository(repo)
    except NotFoundError as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps(record.to_document(), indent=2))
        return

    table = Table(title=f"History of {repo}", show_lines=False, pad_edge=True)
    table.add_column("Ref", style="bold")
    table.add_column("Tip", style="cyan")
    table.add_column("Entries", justify="right")
    table.add_column("Stored", justify="right", style="green")
    table.add_column("Shas", style="dim")

    for ref in record.refs:
        realized = sum(1 for e in ref.entries.values() if not e.is_reference)
        table.add_row(
            ref.name,
            short(ref.tip) if ref.tip else "-",
            str(len(ref.order)),
            str(realized),
            " ".join(short(s) for s in ref.order[:8]) + (" ..." if len(ref.order) > 8 else ""),
        )

    console.print()
    console.print(table)
    tree = svc.history.load(repo)
    if len(tree):
        console.print(f"[dim]{len(tree)} commits in the recorded history graph[/dim]")


@app.command()
def layout(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository full name"),
    depth: int = typer.Option(
        0, "--depth", "-d", help="Levels to lay out (default: history_depth from config)", min=0
    ),
):
    """
    Print the commit graph layout of a repository as JSON, coloured by scan coverage.
    """
    svc = services(ctx)
    tree = svc.history.load(repo)
    if not len(tree):
        console.print(f"[yellow]No history recorded for {repo}.[/yellow]")
        raise typer.Exit(1)

    result = compute_layout(tree, depth or get_config(ctx).history_depth)
    mark_scanned(result, lambda sha: svc.scans.scan_exists(repo, sha), workers=get_config(ctx).workers)
    print(json.dumps(result.to_document(), indent=2))
