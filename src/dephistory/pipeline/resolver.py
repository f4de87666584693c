"""Resolve stage: working copy in, dependency scan out."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..exceptions import ExternalToolError, NotFoundError
from ..git.base import GitCollaborator
from ..history.builder import build_history_tree
from ..logging_config import get_logger
from ..manifests.registry import ParserRegistry
from ..manifests.resolve import resolve_project
from .tasks import IngestionTask, ResolvedScan

if TYPE_CHECKING:
    from ..cache import ParseCache

logger = get_logger(__name__)


class TaskResolver:
    """Checks out a task's sha, parses its manifests and collects history facts.

    The working copy is removed whether or not resolution succeeds.
    """

    def __init__(
        self,
        git: GitCollaborator,
        registry: ParserRegistry,
        include_test: bool = True,
        cache: Optional[ParseCache] = None,
        track_history: bool = True,
    ):
        self.git = git
        self.registry = registry
        self.include_test = include_test
        self.cache = cache
        self.track_history = track_history

    def resolve(self, task: IngestionTask) -> ResolvedScan:
        """
        Raises:
            ExternalToolError: Clone or checkout failed, or HEAD is not the requested sha
            NotFoundError: The task names no ref and no ref points at the sha
            ParseError, SchemaError: A manifest could not be parsed
        """
        path = self.git.clone(task.repository_full_name)
        try:
            sha = self.git.checkout(path, task.after_sha)
            if sha != task.after_sha:
                raise ExternalToolError("git", f"checked out {sha}, expected {task.after_sha}")

            refs = self.git.list_refs_at_sha(path, sha)
            if task.ref and task.ref not in refs:
                refs.insert(0, task.ref)
            if not refs:
                raise NotFoundError("ref", f"{task.repository_full_name}@{sha}")

            scan = resolve_project(
                path,
                self.registry,
                repo_fullname=task.repository_full_name,
                sha=sha,
                refs=refs,
                include_test=self.include_test,
                cache=self.cache,
            )

            history = None
            if self.track_history:
                history = build_history_tree(
                    self.git.commit_graph(path),
                    self.git.branch_heads(path),
                    self.git.tags_at(path),
                    default_branch=self.git.default_branch(path),
                    repo_fullname=task.repository_full_name,
                )
            return ResolvedScan(task=task, scan=scan, hashes=scan.hashes, history=history)
        finally:
            self.git.remove(path)
