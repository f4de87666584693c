"""Shared test fixtures for dephistory."""

import shutil
import tempfile
import threading
from pathlib import Path
from typing import Optional

import pytest

from dephistory.config import IngestConfig
from dephistory.diff import DifferenceEngine
from dephistory.exceptions import ExternalToolError
from dephistory.git.base import GitCollaborator
from dephistory.history import HistoryStore
from dephistory.history.models import CommitInfo
from dephistory.manifests import default_registry
from dephistory.pipeline import IngestionPipeline, TaskResolver
from dephistory.storage import InMemoryDocumentStore, ScanStore


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


class FakeGit(GitCollaborator):
    """In-memory repositories whose commits are sets of manifest files.

    ``checkout`` materializes the files of a sha into the clone directory.
    """

    def __init__(self, workspace: Path):
        self.workspace = workspace
        self.files: dict[str, dict[str, dict[str, str]]] = {}
        self.parents: dict[str, dict[str, tuple[str, ...]]] = {}
        self.refs: dict[str, dict[str, str]] = {}
        self.checkout_overrides: dict[str, str] = {}
        self.clones: dict[Path, str] = {}
        self.removed: list[Path] = []
        self.clone_count = 0
        self._lock = threading.Lock()

    def add_commit(
        self,
        repo: str,
        commit_sha: str,
        files: dict[str, str],
        parents: tuple[str, ...] = (),
        refs: tuple[str, ...] = (),
    ) -> str:
        self.files.setdefault(repo, {})[commit_sha] = dict(files)
        self.parents.setdefault(repo, {})[commit_sha] = tuple(parents)
        for ref in refs:
            self.refs.setdefault(repo, {})[ref] = commit_sha
        return commit_sha

    def clone(self, full_name: str) -> Path:
        if full_name not in self.files:
            raise ExternalToolError("git", f"repository {full_name} not found", 128)
        path = Path(tempfile.mkdtemp(prefix="clone-", dir=self.workspace))
        with self._lock:
            self.clones[path] = full_name
            self.clone_count += 1
        return path

    def checkout(self, path: Path, ref: str) -> str:
        repo = self.clones[path]
        sha = self.refs.get(repo, {}).get(ref, ref)
        for name, content in self.files[repo][sha].items():
            target = path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        return self.checkout_overrides.get(sha, sha)

    def list_refs_at_sha(self, path: Path, sha: str) -> list[str]:
        repo = self.clones[path]
        return sorted(ref for ref, s in self.refs.get(repo, {}).items() if s == sha)

    def tags_at(self, path: Path) -> dict[str, list[str]]:
        repo = self.clones[path]
        tags: dict[str, list[str]] = {}
        for ref, s in sorted(self.refs.get(repo, {}).items()):
            if ref.startswith("refs/tags/"):
                tags.setdefault(s, []).append(ref)
        return tags

    def commit_graph(self, path: Path) -> list[CommitInfo]:
        repo = self.clones[path]
        return [CommitInfo(s, p) for s, p in sorted(self.parents[repo].items())]

    def branch_heads(self, path: Path) -> dict[str, str]:
        repo = self.clones[path]
        return {
            ref: s for ref, s in self.refs.get(repo, {}).items() if ref.startswith("refs/heads/")
        }

    def default_branch(self, path: Path) -> Optional[str]:
        return "master"

    def remove(self, path: Path) -> None:
        with self._lock:
            self.removed.append(path)
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def memory_store():
    """Empty in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def scans(memory_store):
    return ScanStore(memory_store, fetch_workers=4)


@pytest.fixture
def fake_git(tmp_path):
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return FakeGit(workspace)


@pytest.fixture
def test_config():
    return IngestConfig(store_backend="memory", cache_enabled=False, workers=2)


@pytest.fixture
def make_pipeline(scans, fake_git):
    """Factory for pipelines over the shared store and fake git."""
    created = []

    def factory(workers: int = 2, track_history: bool = True) -> IngestionPipeline:
        resolver = TaskResolver(fake_git, default_registry(), include_test=True, track_history=track_history)
        pipeline = IngestionPipeline(
            scans,
            resolver,
            history_store=HistoryStore(scans.store) if track_history else None,
            diff_engine=DifferenceEngine(scans),
            workers=workers,
            queue_capacity=10,
        )
        created.append(pipeline)
        return pipeline

    yield factory
    for pipeline in created:
        pipeline.shutdown()
