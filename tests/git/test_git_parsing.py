"""Tests for git output parsing and the subprocess runner."""

import sys

import pytest

from dephistory.exceptions import ExternalToolError
from dephistory.git import GitCli, parse_for_each_ref, parse_log_graph, parse_show_ref
from dephistory.history import CommitInfo
from dephistory.process import run_command

SHOW_REF = """\
1111111111111111111111111111111111111111 refs/heads/master
2222222222222222222222222222222222222222 refs/remotes/origin/HEAD
3333333333333333333333333333333333333333 refs/remotes/origin/dev
4444444444444444444444444444444444444444 refs/tags/v1.0
1111111111111111111111111111111111111111 refs/tags/v1.0^{}
5555555555555555555555555555555555555555 refs/tags/light
"""


class TestParseShowRef:
    def test_refs(self):
        refs = parse_show_ref(SHOW_REF)
        assert refs == {
            "refs/heads/master": "1" * 40,
            "refs/heads/dev": "3" * 40,
            "refs/tags/v1.0": "1" * 40,
            "refs/tags/light": "5" * 40,
        }

    def test_blank_and_malformed_lines(self):
        assert parse_show_ref("\n\ngarbage\n") == {}


def test_parse_log_graph():
    output = "c p1 p2\np1 p0\np0\n\n"
    assert parse_log_graph(output) == [
        CommitInfo("c", ("p1", "p2")),
        CommitInfo("p1", ("p0",)),
        CommitInfo("p0", ()),
    ]


def test_parse_for_each_ref():
    output = "aaa refs/heads/master\nbbb refs/heads/feature/x\nccc refs/tags/v1\n"
    assert parse_for_each_ref(output) == {"master": "aaa", "feature/x": "bbb"}
    assert parse_for_each_ref(output, prefix="refs/tags/") == {"v1": "ccc"}


class TestRunCommand:
    def test_stdout(self):
        assert run_command([sys.executable, "-c", "print('ok')"], timeout=30).strip() == "ok"

    def test_missing_executable(self):
        with pytest.raises(ExternalToolError) as exc_info:
            run_command(["definitely-not-a-real-tool-xyz"], timeout=5)
        assert exc_info.value.reason == "executable not found"

    def test_non_zero_exit(self):
        cmd = [sys.executable, "-c", "import sys; sys.stderr.write('boom\\n'); sys.exit(3)"]
        with pytest.raises(ExternalToolError) as exc_info:
            run_command(cmd, timeout=30)
        assert exc_info.value.returncode == 3
        assert "boom" in exc_info.value.reason

    @pytest.mark.slow
    def test_timeout(self):
        with pytest.raises(ExternalToolError) as exc_info:
            run_command([sys.executable, "-c", "import time; time.sleep(5)"], timeout=1)
        assert "timed out" in exc_info.value.reason


class TestGitCli:
    def test_clone_failure_cleans_up(self, tmp_path):
        git = GitCli(
            clone_url_template=str(tmp_path / "missing" / "{full_name}"),
            timeout=30,
            workspace_dir=str(tmp_path / "work"),
        )
        with pytest.raises(ExternalToolError):
            git.clone("org/repo")
        assert list((tmp_path / "work").iterdir()) == []

    def test_remove_deletes_temporary_parent(self, tmp_path):
        parent = tmp_path / "dephistory-abc"
        (parent / "repo").mkdir(parents=True)
        GitCli().remove(parent / "repo")
        assert not parent.exists()
