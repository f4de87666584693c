"""Scanning and ingestion commands."""

import json
from pathlib import Path
from typing import List, Optional

import typer

from ..cache import ParseCache
from ..exceptions import DepHistoryError, SchemaError
from ..history import HistoryNode, unscanned
from ..logging_config import get_logger
from ..manifests import default_registry, resolve_project
from ..pipeline import COMMITTED, FAILED, IngestionPipeline, IngestionTask
from . import app
from ._common import console, dependency_table, get_config, services, short

logger = get_logger(__name__)


def _print_stats(pipeline: IngestionPipeline) -> None:
    stats = pipeline.stats()
    console.print(
        f"[green]{stats['committed']} committed[/green], "
        f"[dim]{stats['skipped']} skipped[/dim], "
        f"[red]{stats['failed']} failed[/red]"
    )


@app.command()
def scan(
    ctx: typer.Context,
    path: Path = typer.Argument(
        Path("."), exists=True, file_okay=False, dir_okay=True, readable=True, help="Checkout to scan"
    ),
    include_test: Optional[bool] = typer.Option(
        None, "--test/--no-test", help="Include test/dev dependencies (default: from config)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
):
    """
    Resolve the dependencies of a local checkout without recording anything.
    """
    config = get_config(ctx)
    test = config.include_test if include_test is None else include_test
    cache = (
        ParseCache(config.cache_dir, config.cache_ttl_hours) if config.cache_enabled else None
    )
    try:
        result = resolve_project(
            path,
            default_registry(maven_timeout=config.maven_timeout_seconds),
            include_test=test,
            cache=cache,
        )
    except DepHistoryError as e:
        console.print(f"[red]Scan failed:[/red] {e}")
        raise typer.Exit(1)
    finally:
        if cache is not None:
            cache.close()

    if json_output:
        print(
            json.dumps(
                {
                    "files": list(result.files_scanned),
                    "dependencies": [d.to_document() for d in result.dependencies],
                    "issues": [str(i) for i in result.issues],
                },
                indent=2,
            )
        )
        return

    if not result.files_scanned:
        console.print("[yellow]No manifests found.[/yellow]")
        return
    console.print(dependency_table(f"Dependencies of {path}", list(result.dependencies)))
    for issue in result.issues:
        console.print(f"  [yellow]![/yellow] {issue}")
    console.print(
        f"[dim]{len(result.dependencies)} dependencies from {len(result.files_scanned)} manifests[/dim]"
    )


@app.command()
def ingest(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository full name, e.g. org/repo"),
    sha: str = typer.Argument(..., help="Full commit sha"),
    ref: str = typer.Option("", "--ref", "-r", help="Ref the sha was pushed to, e.g. refs/heads/master"),
):
    """
    Scan one commit and record it.
    """
    svc = services(ctx)
    pipeline = svc.pipeline()
    try:
        outcome = pipeline.run_once(IngestionTask(repo, sha, ref))
    except DepHistoryError as e:
        console.print(f"[red]Ingestion of {repo}@{short(sha)} failed:[/red] {e}")
        raise typer.Exit(1)
    finally:
        pipeline.shutdown()

    if outcome == COMMITTED:
        console.print(f"[green]Recorded[/green] {repo}@{short(sha)}")
    else:
        console.print(f"[dim]{repo}@{short(sha)} already recorded[/dim]")


def _load_payloads(path: Path) -> list:
    text = path.read_text()
    try:
        doc = json.loads(text)
    except json.JSONDecodeError:
        # one payload per line
        return [json.loads(line) for line in text.splitlines() if line.strip()]
    return doc if isinstance(doc, list) else [doc]


@app.command()
def webhook(
    ctx: typer.Context,
    files: List[Path] = typer.Argument(
        ..., exists=True, file_okay=True, dir_okay=False, readable=True, help="Push payload files (JSON)"
    ),
):
    """
    Feed GitHub push payloads through the threaded pipeline.
    """
    svc = services(ctx)
    tasks = []
    for path in files:
        try:
            payloads = _load_payloads(path)
        except json.JSONDecodeError as e:
            console.print(f"[red]{path}: invalid JSON:[/red] {e}")
            raise typer.Exit(1)
        for payload in payloads:
            try:
                tasks.append(IngestionTask.from_webhook(payload))
            except SchemaError as e:
                logger.warning(f"{path}: skipping payload: {e}")

    pipeline = svc.pipeline()
    try:
        pipeline.start()
        for task in tasks:
            pipeline.submit(task)
        pipeline.join()
    finally:
        pipeline.shutdown()
    _print_stats(pipeline)
    if pipeline.stats()[FAILED]:
        raise typer.Exit(1)


@app.command()
def tags(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository full name, e.g. org/repo"),
):
    """
    Record every tag of a repository, scanning tagged commits not seen yet.
    """
    svc = services(ctx)
    try:
        path = svc.git.clone(repo)
        try:
            tagged = svc.git.tags_at(path)
        finally:
            svc.git.remove(path)
    except DepHistoryError as e:
        console.print(f"[red]Listing tags of {repo} failed:[/red] {e}")
        raise typer.Exit(1)

    pipeline = svc.pipeline()
    later: list[tuple[str, str]] = []
    try:
        pipeline.start()
        for sha in sorted(tagged):
            refs = tagged[sha]
            if svc.scans.scan_exists(repo, sha):
                later.extend((tag, sha) for tag in refs)
            else:
                pipeline.submit(IngestionTask(repo, sha, refs[0]))
                later.extend((tag, sha) for tag in refs[1:])
        pipeline.join()
        # Further tags of a sha reuse its scan
        for tag, sha in later:
            if svc.scans.scan_exists(repo, sha):
                pipeline.record_ref(repo, tag, sha)
    finally:
        pipeline.shutdown()
    _print_stats(pipeline)


def _backfill_ref(node: HistoryNode) -> str:
    if node.branch:
        return f"refs/heads/{node.branch}"
    return node.tags[0] if node.tags else ""


@app.command()
def backfill(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository full name, e.g. org/repo"),
    limit: int = typer.Option(0, "--limit", "-n", help="Scan at most this many commits (0 = all)", min=0),
):
    """
    Scan recorded commits of a repository that have no scan yet, oldest first.
    """
    svc = services(ctx)
    tree = svc.history.load(repo)
    if not len(tree):
        console.print(f"[yellow]No history recorded for {repo}.[/yellow] Ingest a commit first.")
        raise typer.Exit(1)

    todo = unscanned(tree, lambda sha: svc.scans.scan_exists(repo, sha))
    if limit:
        todo = todo[:limit]
    if not todo:
        console.print(f"[green]{repo} is fully scanned.[/green]")
        return

    pipeline = svc.pipeline()
    try:
        for sha in todo:
            ref = _backfill_ref(tree[sha])
            if not ref:
                logger.warning(f"[backfill] {repo}@{short(sha)}: no branch or tag, skipped")
                continue
            task = IngestionTask(repo, sha, ref)
            try:
                pipeline.run_once(task)
            except DepHistoryError as e:
                logger.error(f"[backfill] {task}: {e}")
    finally:
        pipeline.shutdown()
    _print_stats(pipeline)
