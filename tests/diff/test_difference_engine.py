"""Tests for dependency diffs between recorded commits."""

import pytest

from dephistory.dependency import Dependency, Ecosystem, Scan, canonicalize
from dephistory.diff import DependencyDiff, DifferenceEngine, diff_hashes
from dephistory.exceptions import NotFoundError
from dephistory.storage import DIFFERENCE

MASTER = "refs/heads/master"


def py(name, version="1"):
    return Dependency(name, version, Ecosystem.PYTHON)


def record(scans, repo, sha, deps, ref=MASTER):
    deps = canonicalize(deps)
    scans.put_dependencies(deps)
    scans.commit(repo, ref, sha, Scan(repo, sha, dependencies=tuple(deps)).hashes)


class TestDiffHashes:
    def test_added_and_removed(self):
        assert diff_hashes({"x", "y"}, {"y", "z"}) == (["z"], ["x"])

    def test_identical(self):
        assert diff_hashes({"x", "y"}, {"y", "x"}) == ([], [])

    def test_sorted(self):
        added, removed = diff_hashes([], ["c", "a", "b"])
        assert added == ["a", "b", "c"]
        assert removed == []


class TestDifferenceEngine:
    def test_diff_resolves_dependencies(self, scans):
        record(scans, "org/a", "s1", [py("x"), py("y")])
        record(scans, "org/a", "s2", [py("y"), py("z")])
        diff = DifferenceEngine(scans).diff("org/a", "s1", "s2")
        assert diff.added == (py("z"),)
        assert diff.removed == (py("x"),)
        assert not diff.is_empty

    def test_diff_through_reference(self, scans):
        record(scans, "org/a", "s1", [py("x")])
        record(scans, "org/a", "s2", [py("x")])
        record(scans, "org/a", "s3", [py("x")])
        assert DifferenceEngine(scans).diff("org/a", "s1", "s3").is_empty

    def test_unknown_sha(self, scans):
        record(scans, "org/a", "s1", [py("x")])
        with pytest.raises(NotFoundError):
            DifferenceEngine(scans).diff("org/a", "s1", "nope")

    def test_compare_tip_persists_changes(self, scans):
        engine = DifferenceEngine(scans)
        record(scans, "org/a", "s1", [py("x")])
        assert engine.compare_tip("org/a", MASTER) is None
        record(scans, "org/a", "s2", [py("x"), py("w")])
        diff = engine.compare_tip("org/a", MASTER)
        assert diff.added == (py("w"),)
        assert scans.store.count(DIFFERENCE) == 1

    def test_empty_diff_not_persisted(self, scans):
        engine = DifferenceEngine(scans)
        record(scans, "org/a", "s1", [py("x")])
        record(scans, "org/a", "s2", [py("x")])
        assert engine.compare_tip("org/a", MASTER) is None
        assert scans.store.count(DIFFERENCE) == 0

    def test_list_differences_newest_first(self, scans):
        engine = DifferenceEngine(scans)
        record(scans, "org/a", "s1", [py("x")])
        record(scans, "org/a", "s2", [py("y")])
        record(scans, "org/a", "s3", [py("z")])
        scans.store.put(
            DIFFERENCE,
            "old",
            DependencyDiff("org/a", MASTER, "s0", "s1", added=(py("x"),), timestamp="2000-01-01").to_document(),
        )
        engine.record_difference("org/a", MASTER, "s2", "s3")
        listed = engine.list_differences("org/a")
        assert [(d.old_sha, d.new_sha) for d in listed] == [("s2", "s3"), ("s0", "s1")]
        assert engine.list_differences("org/other") == []


def test_diff_document_round_trip():
    diff = DependencyDiff("org/a", MASTER, "s1", "s2", added=(py("z"),), removed=(py("x"),))
    assert diff.doc_id == "org_a_s1_s2"
    assert DependencyDiff.from_document(diff.to_document()) == diff
