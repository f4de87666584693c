"""Dependency differences between two snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..dependency import Dependency
from ..storage.chain import repository_doc_id


@dataclass(frozen=True)
class DependencyDiff:
    repo: str
    ref: str
    old_sha: str
    new_sha: str
    added: tuple[Dependency, ...] = ()
    removed: tuple[Dependency, ...] = ()
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed

    @property
    def doc_id(self) -> str:
        return f"{repository_doc_id(self.repo)}_{self.old_sha}_{self.new_sha}"

    def to_document(self) -> dict[str, Any]:
        return {
            "repo": self.repo,
            "ref": self.ref,
            "old_sha": self.old_sha,
            "new_sha": self.new_sha,
            "added": [d.to_document() for d in self.added],
            "removed": [d.to_document() for d in self.removed],
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "DependencyDiff":
        return cls(
            repo=doc["repo"],
            ref=doc.get("ref", ""),
            old_sha=doc["old_sha"],
            new_sha=doc["new_sha"],
            added=tuple(Dependency.from_document(d) for d in doc.get("added", [])),
            removed=tuple(Dependency.from_document(d) for d in doc.get("removed", [])),
            timestamp=doc.get("timestamp", ""),
        )
