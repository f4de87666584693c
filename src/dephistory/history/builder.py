"""Build history trees from git facts, merge them and persist them."""

from __future__ import annotations

from collections import deque
from typing import Callable, Iterable, Mapping, Optional

from ..logging_config import get_logger
from ..storage.base import HISTORY, DocumentStore
from ..storage.chain import HEAD_PREFIX, repository_doc_id
from .layout import DEFAULT_BRANCHES
from .models import CommitInfo, HistoryNode, HistoryTree

logger = get_logger(__name__)


def _branch_order(branch_heads: Mapping[str, str], default_branch: Optional[str]) -> list[str]:
    names = sorted(branch_heads)
    first = [default_branch] if default_branch in branch_heads else []
    first += [b for b in DEFAULT_BRANCHES if b in branch_heads and b not in first]
    return first + [b for b in names if b not in first]


def build_history_tree(
    commits: Iterable[CommitInfo],
    branch_heads: Mapping[str, str],
    tags: Optional[Mapping[str, list[str]]] = None,
    default_branch: Optional[str] = None,
    repo_fullname: str = "",
) -> HistoryTree:
    """Tree of ``commits`` labelled with branches and tags.

    Each branch is walked from its head along first parents, default branch
    first; a commit keeps the first branch that claims it, and the oldest
    commit a walk claims is that branch's start.

    Args:
        branch_heads: branch name (short or ``refs/heads/...``) → head sha
        tags: sha → tag refs pointing at it
    """
    tree = HistoryTree(repo_fullname=repo_fullname)
    for commit in commits:
        tree.add(HistoryNode(sha=commit.sha, parents=list(commit.parents)))

    heads = {
        name[len(HEAD_PREFIX):] if name.startswith(HEAD_PREFIX) else name: sha
        for name, sha in branch_heads.items()
    }
    for branch in _branch_order(heads, default_branch):
        sha: Optional[str] = heads[branch]
        claimed: Optional[HistoryNode] = None
        while sha is not None and sha in tree:
            node = tree[sha]
            if node.branch:
                break
            node.branch = branch
            claimed = node
            sha = node.parents[0] if node.parents else None
        if claimed is not None:
            claimed.is_start_of_branch = True

    for sha, refs in (tags or {}).items():
        node = tree.get(sha)
        if node is not None:
            node.tags = sorted(set(node.tags) | set(refs))
    return tree


def merge_history(stored: HistoryTree, fresh: HistoryTree) -> bool:
    """Fold ``fresh`` into ``stored``; True when ``stored`` changed."""
    changed = False
    for sha in fresh:
        incoming = fresh[sha]
        node = stored.get(sha)
        if node is None:
            stored.add(incoming.copy())
            changed = True
            continue
        tags = sorted(set(node.tags) | set(incoming.tags))
        if tags != node.tags:
            node.tags = tags
            changed = True
        if not node.branch and incoming.branch:
            node.branch = incoming.branch
            node.is_start_of_branch = incoming.is_start_of_branch
            changed = True
    return changed


def topological_order(tree: HistoryTree) -> list[str]:
    """Shas with every in-tree parent before its children, ties in sha order."""
    pending = {sha: len(tree.parents(sha)) for sha in tree.nodes}
    ready = deque(sorted(sha for sha, n in pending.items() if n == 0))
    order: list[str] = []
    while ready:
        sha = ready.popleft()
        order.append(sha)
        for child in tree.children(sha):
            pending[child] -= 1
            if pending[child] == 0:
                ready.append(child)
    return order


def unscanned(tree: HistoryTree, exists: Callable[[str], bool]) -> list[str]:
    """Commits without a scan, oldest first."""
    return [sha for sha in topological_order(tree) if not exists(sha)]


class HistoryStore:
    """Persists one HistoryTree document per repository."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def load(self, full_name: str) -> HistoryTree:
        doc = self.store.get(HISTORY, repository_doc_id(full_name))
        if doc is None:
            return HistoryTree(repo_fullname=full_name)
        return HistoryTree.from_document(doc)

    def save(self, tree: HistoryTree) -> None:
        self.store.put(HISTORY, repository_doc_id(tree.repo_fullname), tree.to_document())

    def merge(self, full_name: str, fresh: HistoryTree) -> bool:
        """Merge ``fresh`` into the stored tree, writing only when it changed."""
        stored = self.load(full_name)
        stored.repo_fullname = full_name
        changed = merge_history(stored, fresh)
        if changed:
            self.save(stored)
            logger.debug(f"{full_name}: history now has {len(stored)} commits")
        return changed
