"""Commit history graph: building, merging, traversal and layout."""

from .algorithms import calculate_heights, generate_subtree, leaves, reset_all_weights, reverse_weights, traverse_from
from .builder import HistoryStore, build_history_tree, merge_history, topological_order, unscanned
from .layout import Layout, LayoutNode, compute_layout, mark_scanned
from .models import CommitInfo, Direction, HistoryNode, HistoryTree

__all__ = [
    "CommitInfo",
    "Direction",
    "HistoryNode",
    "HistoryTree",
    "HistoryStore",
    "Layout",
    "LayoutNode",
    "build_history_tree",
    "calculate_heights",
    "compute_layout",
    "generate_subtree",
    "leaves",
    "mark_scanned",
    "merge_history",
    "reset_all_weights",
    "reverse_weights",
    "topological_order",
    "traverse_from",
    "unscanned",
]
