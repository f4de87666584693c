"""Diff CLI commands."""

import json
from typing import Optional

import typer

from ..diff import DependencyDiff
from ..exceptions import DepHistoryError
from . import app
from ._common import console, services, short


def _print_diff(diff: DependencyDiff) -> None:
    console.print(
        f"[bold]{diff.repo}[/bold] {diff.ref or ''} {short(diff.old_sha)}..{short(diff.new_sha)}"
    )
    if diff.is_empty:
        console.print("  [dim]no dependency changes[/dim]")
        return
    for dep in diff.added:
        console.print(f"  [green]+ {dep}[/green]")
    for dep in diff.removed:
        console.print(f"  [red]- {dep}[/red]")


@app.command()
def diff(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository full name"),
    old_sha: str = typer.Argument(..., help="Older commit sha"),
    new_sha: str = typer.Argument(..., help="Newer commit sha"),
    ref: Optional[str] = typer.Option(None, "--ref", "-r", help="Resolve both shas on this ref"),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    Dependencies added and removed between two recorded commits.
    """
    svc = services(ctx)
    try:
        result = svc.differences.diff(repo, old_sha, new_sha, ref)
    except DepHistoryError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps(result.to_document(), indent=2))
        return
    _print_diff(result)


@app.command()
def differences(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository full name"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum number of differences", min=1),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    Dependency changes recorded during ingestion, newest first.
    """
    svc = services(ctx)
    recorded = svc.differences.list_differences(repo)[:limit]
    if json_output:
        print(json.dumps([d.to_document() for d in recorded], indent=2))
        return
    if not recorded:
        console.print(f"[yellow]No dependency changes recorded for {repo}.[/yellow]")
        return
    for item in recorded:
        _print_diff(item)
