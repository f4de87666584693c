"""Ingestion tasks and stage results."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Optional

from ..dependency import Scan
from ..exceptions import SchemaError
from ..history.models import HistoryTree

WEBHOOK = "<webhook>"
NULL_SHA = "0" * 40


def _first(payload: dict[str, Any], *keys: str) -> Optional[Any]:
    for key in keys:
        value = payload.get(key)
        if value:
            return value
    return None


@dataclass(frozen=True)
class IngestionTask:
    """One (repository, sha, ref) to scan."""

    repository_full_name: str
    after_sha: str
    ref: str = ""

    @classmethod
    def from_webhook(cls, payload: dict[str, Any]) -> "IngestionTask":
        """Build a task from a GitHub push payload or the flat form.

        Raises:
            SchemaError: Required fields are missing or the push deletes the ref
        """
        if not isinstance(payload, dict):
            raise SchemaError(WEBHOOK, "payload is not an object")

        repository = payload.get("repository")
        if isinstance(repository, dict):
            full_name = repository.get("full_name")
            sha = payload.get("after")
        else:
            full_name = _first(payload, "repositoryFullName", "repository_full_name")
            sha = _first(payload, "afterSha", "after_sha", "after")
        ref = payload.get("ref") or ""

        if not full_name or "/" not in str(full_name):
            raise SchemaError(WEBHOOK, "missing repository full name")
        if not sha:
            raise SchemaError(WEBHOOK, "missing after sha")
        if sha == NULL_SHA:
            raise SchemaError(WEBHOOK, f"push deletes {ref or 'the ref'}")
        return cls(str(full_name), str(sha), str(ref))

    def __str__(self) -> str:
        return f"{self.repository_full_name}@{self.after_sha[:7]}"


@dataclass
class ResolvedScan:
    """Output of the resolve stage, input of the commit stage."""

    task: IngestionTask
    scan: Scan
    hashes: list[str]
    history: Optional[HistoryTree] = None
    dependency_write: Optional[Future] = None

    @property
    def ref(self) -> str:
        if self.task.ref:
            return self.task.ref
        return self.scan.refs[0] if self.scan.refs else ""
