"""Commit history graph of one repository."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional


class Direction(str, Enum):
    """UP follows parent edges (towards older commits), DOWN follows child edges."""

    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class CommitInfo:
    """A commit and its parent shas, as reported by git."""

    sha: str
    parents: tuple[str, ...] = ()


@dataclass
class HistoryNode:
    """One commit.

    ``weight`` is scratch state for a single layout pass and is never
    persisted.
    """

    sha: str
    parents: list[str] = field(default_factory=list)
    branch: str = ""
    tags: list[str] = field(default_factory=list)
    is_start_of_branch: bool = False
    weight: int = 0

    def copy(self) -> "HistoryNode":
        return HistoryNode(
            sha=self.sha,
            parents=list(self.parents),
            branch=self.branch,
            tags=list(self.tags),
            is_start_of_branch=self.is_start_of_branch,
            weight=self.weight,
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "sha": self.sha,
            "parents": list(self.parents),
            "branch": self.branch,
            "tags": list(self.tags),
            "is_start_of_branch": self.is_start_of_branch,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "HistoryNode":
        return cls(
            sha=doc["sha"],
            parents=list(doc.get("parents", [])),
            branch=doc.get("branch", ""),
            tags=list(doc.get("tags", [])),
            is_start_of_branch=bool(doc.get("is_start_of_branch", False)),
        )


class HistoryTree:
    """Mapping sha → HistoryNode.

    A parent sha that is not in the tree marks the boundary of the known
    history; edges to it are ignored by every traversal.
    """

    def __init__(self, nodes: Optional[dict[str, HistoryNode]] = None, repo_fullname: str = ""):
        self.nodes: dict[str, HistoryNode] = dict(nodes or {})
        self.repo_fullname = repo_fullname
        self._children: Optional[dict[str, list[str]]] = None

    def add(self, node: HistoryNode) -> None:
        self.nodes[node.sha] = node
        self._children = None

    def get(self, sha: str) -> Optional[HistoryNode]:
        return self.nodes.get(sha)

    def __getitem__(self, sha: str) -> HistoryNode:
        return self.nodes[sha]

    def __contains__(self, sha: object) -> bool:
        return sha in self.nodes

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.nodes))

    def __len__(self) -> int:
        return len(self.nodes)

    def parents(self, sha: str) -> list[str]:
        """Parents of ``sha`` that are inside the tree."""
        return [p for p in self.nodes[sha].parents if p in self.nodes]

    def children(self, sha: str) -> list[str]:
        if self._children is None:
            children: dict[str, list[str]] = {s: [] for s in self.nodes}
            for s in sorted(self.nodes):
                for parent in self.nodes[s].parents:
                    if parent in children:
                        children[parent].append(s)
            self._children = children
        return list(self._children.get(sha, []))

    def neighbours(self, sha: str, direction: Direction) -> list[str]:
        return self.parents(sha) if direction == Direction.UP else self.children(sha)

    def to_document(self) -> dict[str, Any]:
        return {
            "repo_fullname": self.repo_fullname,
            "nodes": [self.nodes[sha].to_document() for sha in sorted(self.nodes)],
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "HistoryTree":
        nodes = [HistoryNode.from_document(n) for n in doc.get("nodes", [])]
        return cls({n.sha: n for n in nodes}, repo_fullname=doc.get("repo_fullname", ""))
