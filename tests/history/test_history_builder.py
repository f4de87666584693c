"""Tests for building, merging and persisting history trees."""

from dephistory.history import (
    CommitInfo,
    HistoryNode,
    HistoryStore,
    HistoryTree,
    build_history_tree,
    merge_history,
    topological_order,
    unscanned,
)

COMMITS = [
    CommitInfo("a"),
    CommitInfo("b", ("a",)),
    CommitInfo("c", ("b",)),
    CommitInfo("d", ("c",)),
    CommitInfo("e", ("b",)),
    CommitInfo("f", ("d", "e")),
    CommitInfo("g", ("f",)),
    CommitInfo("h", ("e",)),
]
HEADS = {"refs/heads/master": "g", "refs/heads/dev": "h"}


class TestBuildHistoryTree:
    def test_branches_claimed_along_first_parents(self):
        tree = build_history_tree(COMMITS, HEADS)
        assert {sha: tree[sha].branch for sha in tree} == {
            "a": "master",
            "b": "master",
            "c": "master",
            "d": "master",
            "e": "dev",
            "f": "master",
            "g": "master",
            "h": "dev",
        }

    def test_branch_starts(self):
        tree = build_history_tree(COMMITS, HEADS)
        assert sorted(sha for sha in tree if tree[sha].is_start_of_branch) == ["a", "e"]

    def test_default_branch_claims_first(self):
        tree = build_history_tree(COMMITS, HEADS, default_branch="dev")
        assert tree["b"].branch == "dev"
        assert tree["a"].branch == "dev"
        assert tree["c"].is_start_of_branch
        assert tree["c"].branch == "master"

    def test_tags(self):
        tree = build_history_tree(COMMITS, HEADS, tags={"g": ["refs/tags/v2", "refs/tags/v1"], "zz": ["x"]})
        assert tree["g"].tags == ["refs/tags/v1", "refs/tags/v2"]
        assert "zz" not in tree

    def test_short_branch_names(self):
        tree = build_history_tree(COMMITS, {"master": "g"})
        assert tree["a"].branch == "master"
        assert tree["h"].branch == ""


class TestMergeHistory:
    def test_new_commits_change_tree(self):
        stored = build_history_tree(COMMITS[:4], {"master": "d"})
        fresh = build_history_tree(COMMITS, HEADS)
        assert merge_history(stored, fresh) is True
        assert len(stored) == len(COMMITS)
        assert stored["h"].branch == "dev"

    def test_same_facts_do_not_change(self):
        stored = build_history_tree(COMMITS, HEADS)
        assert merge_history(stored, build_history_tree(COMMITS, HEADS)) is False

    def test_new_tag_changes(self):
        stored = build_history_tree(COMMITS, HEADS)
        fresh = build_history_tree(COMMITS, HEADS, tags={"d": ["refs/tags/v1"]})
        assert merge_history(stored, fresh) is True
        assert stored["d"].tags == ["refs/tags/v1"]

    def test_existing_branch_label_kept(self):
        stored = build_history_tree(COMMITS, HEADS)
        fresh = build_history_tree(COMMITS, HEADS, default_branch="dev")
        merge_history(stored, fresh)
        assert stored["b"].branch == "master"


class TestOrdering:
    def test_topological_order(self):
        tree = build_history_tree(COMMITS, HEADS)
        order = topological_order(tree)
        assert order[0] == "a"
        assert len(order) == len(COMMITS)
        for sha in order:
            for parent in tree.parents(sha):
                assert order.index(parent) < order.index(sha)

    def test_unscanned_oldest_first(self):
        tree = build_history_tree(COMMITS, HEADS)
        todo = unscanned(tree, lambda sha: sha in {"a", "b", "g"})
        assert todo == ["c", "e", "d", "h", "f"]


class TestHistoryStore:
    def test_load_unknown_repository(self, memory_store):
        tree = HistoryStore(memory_store).load("org/none")
        assert len(tree) == 0
        assert tree.repo_fullname == "org/none"

    def test_merge_persists_only_changes(self, memory_store):
        history = HistoryStore(memory_store)
        fresh = build_history_tree(COMMITS, HEADS)
        assert history.merge("org/repo", fresh) is True
        assert history.merge("org/repo", fresh) is False
        loaded = history.load("org/repo")
        assert len(loaded) == len(COMMITS)
        assert loaded["e"].is_start_of_branch

    def test_save_and_load(self, memory_store):
        history = HistoryStore(memory_store)
        tree = HistoryTree({"x": HistoryNode("x", tags=["refs/tags/v1"])}, repo_fullname="org/repo")
        history.save(tree)
        assert history.load("org/repo")["x"].tags == ["refs/tags/v1"]
