"""Git collaborator interface."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..history.models import CommitInfo


class GitCollaborator(ABC):
    """Sha and ref facts about a repository, plus working copies to scan."""

    @abstractmethod
    def clone(self, full_name: str) -> Path:
        """Fresh working copy of ``full_name`` with every remote branch tracked."""

    @abstractmethod
    def checkout(self, path: Path, ref: str) -> str:
        """Check out ``ref`` (sha, branch or tag) and return the resulting sha."""

    @abstractmethod
    def list_refs_at_sha(self, path: Path, sha: str) -> list[str]:
        """Full ref names (``refs/heads/...``, ``refs/tags/...``) pointing at ``sha``."""

    @abstractmethod
    def tags_at(self, path: Path) -> dict[str, list[str]]:
        """sha → tag refs pointing at it (annotated tags peeled to their commit)."""

    @abstractmethod
    def commit_graph(self, path: Path) -> list[CommitInfo]:
        """Every commit reachable from any ref."""

    @abstractmethod
    def branch_heads(self, path: Path) -> dict[str, str]:
        """Local branch name → head sha."""

    @abstractmethod
    def remove(self, path: Path) -> None:
        """Delete a working copy created by ``clone``."""

    def default_branch(self, path: Path) -> Optional[str]:
        return None
