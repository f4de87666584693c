"""Shared CLI helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..cache import ParseCache
from ..config import IngestConfig
from ..dependency import Dependency
from ..diff import DifferenceEngine
from ..git import GitCli, GitCollaborator
from ..history import HistoryStore
from ..manifests import ParserRegistry, default_registry
from ..pipeline import IngestionPipeline, TaskResolver
from ..storage import DocumentStore, ScanStore, open_store

console = Console()


@dataclass
class Services:
    """Everything a command needs, wired from one configuration."""

    config: IngestConfig
    store: DocumentStore
    scans: ScanStore
    history: HistoryStore
    differences: DifferenceEngine
    registry: ParserRegistry
    cache: Optional[ParseCache]
    git: GitCollaborator

    def pipeline(self) -> IngestionPipeline:
        resolver = TaskResolver(
            self.git,
            self.registry,
            include_test=self.config.include_test,
            cache=self.cache,
            track_history=self.config.track_history,
        )
        return IngestionPipeline(
            self.scans,
            resolver,
            history_store=self.history if self.config.track_history else None,
            diff_engine=self.differences,
            workers=self.config.workers,
            queue_capacity=self.config.queue_capacity,
        )

    def close(self) -> None:
        if self.cache is not None:
            self.cache.close()
        self.store.close()


def get_config(ctx: typer.Context) -> IngestConfig:
    return ctx.obj["config"]


def build_services(config: IngestConfig, git: Optional[GitCollaborator] = None) -> Services:
    store = open_store(config.store_backend, config.store_path)
    scans = ScanStore(store, fetch_workers=config.workers, search_size=config.search_size)
    cache = (
        ParseCache(config.cache_dir, config.cache_ttl_hours, enabled=True)
        if config.cache_enabled
        else None
    )
    return Services(
        config=config,
        store=store,
        scans=scans,
        history=HistoryStore(store),
        differences=DifferenceEngine(scans),
        registry=default_registry(maven_timeout=config.maven_timeout_seconds),
        cache=cache,
        git=git
        or GitCli(
            clone_url_template=config.clone_url_template,
            timeout=config.checkout_timeout_seconds,
            workspace_dir=config.workspace_dir,
        ),
    )


def services(ctx: typer.Context) -> Services:
    """Services for this invocation, built on first use and closed with the context."""
    existing = ctx.obj.get("services")
    if existing is None:
        factory = ctx.obj.get("services_factory", build_services)
        existing = factory(get_config(ctx))
        ctx.obj["services"] = existing
        ctx.call_on_close(existing.close)
    return existing


def dependency_table(title: str, dependencies: list[Dependency]) -> Table:
    table = Table(title=title, show_lines=False, pad_edge=True)
    table.add_column("Name", style="bold")
    table.add_column("Version", style="cyan")
    table.add_column("Ecosystem", style="green")
    for dep in dependencies:
        table.add_row(dep.name, dep.version or "-", dep.ecosystem.value)
    return table


def short(sha: str) -> str:
    return sha[:7]
