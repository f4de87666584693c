"""Visual layout of a repository history: node positions, edges and scan coverage."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..logging_config import get_logger
from .algorithms import calculate_heights, generate_subtree, leaves, reset_all_weights, reverse_weights, traverse_from
from .models import Direction, HistoryNode, HistoryTree

logger = get_logger(__name__)

X_SPACING = 200
Y_SPACING = -150
GRID_COLUMNS = 5
DEFAULT_BRANCHES = ("master", "main")


@dataclass
class LayoutNode:
    sha: str
    x: int
    y: int
    label: str
    secondary_label: str = ""
    color: str = ""

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.sha,
            "x": self.x,
            "y": self.y,
            "label": self.label,
            "secondary_label": self.secondary_label,
            "color": self.color,
        }


@dataclass
class Layout:
    nodes: list[LayoutNode] = field(default_factory=list)
    edges: list[tuple[str, str]] = field(default_factory=list)

    def to_document(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_document() for n in self.nodes],
            "edges": [{"from": a, "to": b} for a, b in self.edges],
        }


def branch_columns(tree: HistoryTree) -> dict[str, int]:
    """Column per branch: the default branch first, the rest by name."""
    branches = sorted({node.branch for node in tree.nodes.values()})
    ordered = [b for b in DEFAULT_BRANCHES if b in branches]
    ordered += [b for b in branches if b not in ordered]
    return {branch: index for index, branch in enumerate(ordered)}


def _secondary_label(node: HistoryNode) -> str:
    parts = []
    if node.is_start_of_branch and node.branch:
        parts.append(node.branch)
    parts.extend(node.tags)
    return " ".join(parts)


def collect_edges(subtree: HistoryTree, tips: list[str]) -> list[tuple[str, str]]:
    """Child → parent edges of ``subtree``, each emitted once, in traversal order."""
    edges: list[tuple[str, str]] = []
    seen: set[tuple[str, str]] = set()

    def visit(node: HistoryNode, weight: int) -> Optional[int]:
        if weight <= node.weight:
            return None
        node.weight = weight
        for parent in sorted(subtree.parents(node.sha)):
            edge = (node.sha, parent)
            if edge not in seen:
                seen.add(edge)
                edges.append(edge)
        return weight

    reset_all_weights(subtree, -1)
    for tip in tips:
        traverse_from(subtree, tip, Direction.UP, 0, visit)
    return edges


def compute_layout(tree: HistoryTree, depth: int = 10) -> Layout:
    """Lay out the newest ``depth`` levels of every branch.

    x is the branch column, y the commit level (oldest at the top after the
    weights are reversed). Tagged commits older than the window are placed
    in a grid to the right.
    """
    tips = leaves(tree)
    subtree = generate_subtree(tree, tips, Direction.UP, depth)
    edges = collect_edges(subtree, tips)

    reset_all_weights(subtree, -1)
    highest = 0
    for tip in tips:
        highest = max(highest, calculate_heights(subtree, tip, Direction.UP, 0))
    reverse_weights(subtree, highest)

    columns = branch_columns(subtree)
    layout = Layout(edges=edges)
    for sha in subtree:
        node = subtree[sha]
        layout.nodes.append(
            LayoutNode(
                sha=sha,
                x=columns.get(node.branch, 0) * X_SPACING,
                y=node.weight * Y_SPACING,
                label=sha[:7],
                secondary_label=_secondary_label(node),
            )
        )

    outside = [sha for sha in tree if tree[sha].tags and sha not in subtree]
    grid_x = (len(columns) + 1) * X_SPACING
    for index, sha in enumerate(outside):
        node = tree[sha]
        layout.nodes.append(
            LayoutNode(
                sha=sha,
                x=grid_x + (index % GRID_COLUMNS) * X_SPACING,
                y=(index // GRID_COLUMNS) * Y_SPACING,
                label=sha[:7],
                secondary_label=" ".join(node.tags),
            )
        )

    logger.debug(f"Layout: {len(layout.nodes)} nodes, {len(layout.edges)} edges, {len(outside)} in grid")
    return layout


def mark_scanned(layout: Layout, exists: Callable[[str], bool], workers: int = 8) -> Layout:
    """Color each node ``good`` when a scan exists for it, ``bad`` otherwise.

    Checks run concurrently; results land in a list addressed by node index.
    """
    results: list[bool] = [False] * len(layout.nodes)

    def check(index: int) -> None:
        results[index] = exists(layout.nodes[index].sha)

    if layout.nodes:
        with ThreadPoolExecutor(max_workers=max(1, min(workers, len(layout.nodes)))) as pool:
            futures = [pool.submit(check, i) for i in range(len(layout.nodes))]
            for future in futures:
                future.result()

    for node, scanned in zip(layout.nodes, results):
        node.color = "good" if scanned else "bad"
    return layout
