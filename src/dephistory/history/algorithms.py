"""History graph algorithms: leaves, bounded subtrees, traversal and heights.

Every traversal is iterative and visits neighbours in sha order, so repeated
passes over the same tree assign the same weights.
"""

from collections import deque
from typing import Callable, Iterable, Optional

from .models import Direction, HistoryNode, HistoryTree

# visit(node, weight) -> new weight when the node changed, None otherwise
Visitor = Callable[[HistoryNode, int], Optional[int]]


def leaves(tree: HistoryTree) -> list[str]:
    """Nodes that are nobody's parent, i.e. branch tips, in sha order."""
    referenced: set[str] = set()
    for node in tree.nodes.values():
        referenced.update(node.parents)
    return sorted(sha for sha in tree.nodes if sha not in referenced)


def generate_subtree(
    tree: HistoryTree, roots: Iterable[str], direction: Direction, depth: int
) -> HistoryTree:
    """Induced sub-DAG of nodes within ``depth`` steps of ``roots``.

    Nodes at distance < ``depth`` are kept. Nodes are copied; parent lists
    keep only parents that are themselves kept.
    """
    distance: dict[str, int] = {}
    queue: deque[str] = deque()
    for root in sorted(set(roots)):
        if root in tree and root not in distance:
            distance[root] = 0
            queue.append(root)

    while queue:
        sha = queue.popleft()
        next_distance = distance[sha] + 1
        if next_distance >= depth:
            continue
        for neighbour in sorted(tree.neighbours(sha, direction)):
            if neighbour not in distance:
                distance[neighbour] = next_distance
                queue.append(neighbour)

    included = {sha for sha, d in distance.items() if d < depth}
    subtree = HistoryTree(repo_fullname=tree.repo_fullname)
    for sha in sorted(included):
        node = tree[sha].copy()
        node.parents = [p for p in node.parents if p in included]
        subtree.add(node)
    return subtree


def traverse_from(
    tree: HistoryTree, sha: str, direction: Direction, initial_weight: int, visit: Visitor
) -> int:
    """Breadth-first walk that only expands nodes whose visit reported a change.

    Neighbours of a changed node are visited with the returned weight plus
    one. A node reached again by a longer path is visited again, so
    with a max-keeping visitor the cost is bounded by the number of distinct
    path lengths per node, not by nodes plus edges. Use
    :func:`calculate_heights` where a linear bound matters. Returns the number
    of visits.
    """
    if sha not in tree:
        return 0
    visits = 0
    queue: deque[tuple[str, int]] = deque([(sha, initial_weight)])
    while queue:
        current, weight = queue.popleft()
        visits += 1
        result = visit(tree[current], weight)
        if result is None:
            continue
        for neighbour in sorted(tree.neighbours(current, direction)):
            queue.append((neighbour, result + 1))
    return visits


def _reachable(tree: HistoryTree, sha: str, direction: Direction) -> set[str]:
    seen = {sha}
    stack = [sha]
    while stack:
        current = stack.pop()
        for neighbour in tree.neighbours(current, direction):
            if neighbour not in seen:
                seen.add(neighbour)
                stack.append(neighbour)
    return seen


def calculate_heights(tree: HistoryTree, sha: str, direction: Direction, seed: int = 0) -> int:
    """Longest-path depth from ``sha``; each node keeps the max of its weight and its depth.

    Topological relaxation over the nodes reachable from ``sha``, so the cost
    is linear in nodes plus edges. Returns the maximum height found.
    """
    if sha not in tree:
        return seed
    reachable = _reachable(tree, sha, direction)
    indegree = {s: 0 for s in reachable}
    for s in reachable:
        for neighbour in tree.neighbours(s, direction):
            indegree[neighbour] += 1

    height = {s: None for s in reachable}
    height[sha] = seed
    ready = deque(sorted(s for s, d in indegree.items() if d == 0))
    while ready:
        current = ready.popleft()
        for neighbour in sorted(tree.neighbours(current, direction)):
            if height[current] is not None:
                candidate = height[current] + 1
                if height[neighbour] is None or candidate > height[neighbour]:
                    height[neighbour] = candidate
            indegree[neighbour] -= 1
            if indegree[neighbour] == 0:
                ready.append(neighbour)

    highest = seed
    for s, h in height.items():
        if h is None:
            continue
        node = tree[s]
        node.weight = max(node.weight, h)
        highest = max(highest, h)
    return highest


def reverse_weights(tree: HistoryTree, maximum: int) -> None:
    for node in tree.nodes.values():
        node.weight = maximum - node.weight


def reset_all_weights(tree: HistoryTree, value: int = 0) -> None:
    for node in tree.nodes.values():
        node.weight = value
