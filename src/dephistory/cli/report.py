"""Report and search commands."""

import json
from typing import List, NoReturn, Optional

import typer

from ..dependency import Issue
from ..exceptions import DepHistoryError, NotFoundError
from . import app
from ._common import console, dependency_table, services, short


def _fail(e: DepHistoryError) -> NoReturn:
    if isinstance(e, NotFoundError):
        console.print(f"[yellow]{e}[/yellow]")
    else:
        console.print(f"[red]Error:[/red] {e}")
    raise typer.Exit(1)


def _print_by_repo(title: str, results: dict, json_output: bool) -> None:
    if json_output:
        print(
            json.dumps(
                {
                    repo: {"sha": sha, "dependencies": [d.to_document() for d in deps]}
                    for repo, (sha, deps) in results.items()
                },
                indent=2,
            )
        )
        return
    for repo, (sha, deps) in results.items():
        console.print(dependency_table(f"{repo} {title} ({short(sha)})", deps))


@app.command()
def report(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository full name"),
    sha: str = typer.Argument(..., help="Commit sha"),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    Dependencies recorded for one commit.
    """
    svc = services(ctx)
    try:
        doc = svc.scans.get_scan(repo, sha)
        dependencies = svc.scans.dependencies_at(repo, sha)
    except DepHistoryError as e:
        _fail(e)

    issues = [Issue.from_document(i) for i in doc.get("issues", [])]
    if json_output:
        print(
            json.dumps(
                {
                    "repo": repo,
                    "sha": sha,
                    "refs": doc.get("refs", []),
                    "files": doc.get("files", []),
                    "dependencies": [d.to_document() for d in dependencies],
                    "issues": [str(i) for i in issues],
                },
                indent=2,
            )
        )
        return

    console.print(dependency_table(f"{repo}@{short(sha)}", dependencies))
    if doc.get("refs"):
        console.print(f"[dim]Refs: {', '.join(doc['refs'])}[/dim]")
    for issue in issues:
        console.print(f"  [yellow]![/yellow] {issue}")


@app.command("report-ref")
def report_ref(
    ctx: typer.Context,
    ref: str = typer.Argument(..., help="Full ref name, e.g. refs/heads/master"),
    org: Optional[str] = typer.Option(None, "--org", help="Only repositories of this owner"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Only this repository"),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    Dependencies at the tip of a ref, per repository.
    """
    svc = services(ctx)
    try:
        results = svc.scans.dependencies_by_ref(ref, org=org, repo=repo)
    except DepHistoryError as e:
        _fail(e)
    _print_by_repo(ref, results, json_output)


@app.command("report-tag")
def report_tag(
    ctx: typer.Context,
    tag: str = typer.Argument(..., help="Tag name or refs/tags/... ref"),
    org: Optional[str] = typer.Option(None, "--org", help="Only repositories of this owner"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Only this repository"),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    Dependencies at a tag, per repository.
    """
    svc = services(ctx)
    try:
        results = svc.scans.dependencies_by_tag(tag, org=org, repo=repo)
    except DepHistoryError as e:
        _fail(e)
    _print_by_repo(tag, results, json_output)


@app.command()
def search(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Dependency name"),
    version: str = typer.Option("", "--version", help="Version prefix, e.g. 1.2"),
    repos: Optional[List[str]] = typer.Option(None, "--repo", help="Restrict to these repositories"),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    Find the repositories, refs and commits that use a dependency.
    """
    svc = services(ctx)
    try:
        results = svc.scans.search_dependency(name, version, repos=repos or None)
    except DepHistoryError as e:
        _fail(e)

    if json_output:
        print(json.dumps(results, indent=2))
        return
    if not results:
        console.print(f"[yellow]No scans use {name}{' ' + version if version else ''}.[/yellow]")
        return
    for repo, refs in results.items():
        console.print(f"[bold]{repo}[/bold]")
        for ref, shas in refs.items():
            console.print(f"  [cyan]{ref or '-'}[/cyan] {' '.join(short(s) for s in shas)}")
