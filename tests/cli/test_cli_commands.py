"""End-to-end tests for the dephistory CLI over an in-memory store."""

import json
from dataclasses import replace

import pytest
from typer.testing import CliRunner

from dephistory import __version__
from dephistory.cli import app
from dephistory.cli._common import build_services

runner = CliRunner()

REPO = "org/app"
MASTER = "refs/heads/master"
S1 = "1" * 40
S2 = "2" * 40


@pytest.fixture
def cli(test_config, fake_git):
    """Invoke the app quietly against one shared set of services."""
    svc = build_services(test_config, git=fake_git)

    def invoke(*args):
        obj = {"config": test_config, "services_factory": lambda config: svc}
        return runner.invoke(app, ["-q", *args], obj=obj)

    invoke.services = svc
    return invoke


@pytest.fixture
def repo(fake_git):
    fake_git.add_commit(REPO, S1, {"requirements.txt": "flask==2.0\n"}, refs=(MASTER, "refs/tags/v1"))
    fake_git.add_commit(REPO, S2, {"requirements.txt": "flask==2.1\nrequests==2.31.0\n"}, parents=(S1,), refs=(MASTER,))
    return fake_git


def stdout_json(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestScan:
    def test_json(self, cli, tmp_path):
        (tmp_path / "requirements.txt").write_text("flask==2.0\n")
        (tmp_path / "package.json").write_text('{"dependencies": {"left-pad": "1.3.0"}}')
        doc = stdout_json(cli("scan", str(tmp_path), "--json"))
        assert sorted(doc["files"]) == ["package.json", "requirements.txt"]
        assert sorted(d["name"] for d in doc["dependencies"]) == ["flask", "left-pad"]

    def test_no_manifests(self, cli, tmp_path):
        result = cli("scan", str(tmp_path))
        assert result.exit_code == 0
        assert "No manifests found" in result.output

    def test_malformed_manifest(self, cli, tmp_path):
        (tmp_path / "package.json").write_text("{oops")
        result = cli("scan", str(tmp_path))
        assert result.exit_code == 1
        assert "Scan failed" in result.output


class TestIngestAndReport:
    def test_ingest_then_report(self, cli, repo):
        result = cli("ingest", REPO, S1, "--ref", MASTER)
        assert result.exit_code == 0
        assert "Recorded" in result.output

        doc = stdout_json(cli("report", REPO, S1, "--json"))
        assert [d["name"] for d in doc["dependencies"]] == ["flask"]
        assert MASTER in doc["refs"]

    def test_ingest_twice(self, cli, repo):
        cli("ingest", REPO, S1, "--ref", MASTER)
        result = cli("ingest", REPO, S1, "--ref", MASTER)
        assert result.exit_code == 0
        assert "already recorded" in result.output

    def test_ingest_unknown_repository(self, cli, repo):
        result = cli("ingest", "org/missing", S1)
        assert result.exit_code == 1
        assert "failed" in result.output

    def test_report_unknown_sha(self, cli, repo):
        result = cli("report", REPO, S1)
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_report_ref(self, cli, repo):
        cli("ingest", REPO, S1, "--ref", MASTER)
        cli("ingest", REPO, S2, "--ref", MASTER)
        doc = stdout_json(cli("report-ref", MASTER, "--org", "org", "--json"))
        assert doc[REPO]["sha"] == S2
        assert sorted(d["name"] for d in doc[REPO]["dependencies"]) == ["flask", "requests"]

    def test_report_ref_unknown(self, cli, repo):
        cli("ingest", REPO, S1, "--ref", MASTER)
        result = cli("report-ref", "refs/heads/nope")
        assert result.exit_code == 1

    def test_search(self, cli, repo):
        cli("ingest", REPO, S1, "--ref", MASTER)
        cli("ingest", REPO, S2, "--ref", MASTER)
        doc = stdout_json(cli("search", "flask", "--version", "2.1", "--json"))
        assert doc == {REPO: {MASTER: [S2]}}
        assert stdout_json(cli("search", "django", "--json")) == {}


class TestTags:
    def test_tags_recorded(self, cli, repo, fake_git):
        fake_git.refs[REPO]["refs/tags/v1-final"] = S1
        result = cli("tags", REPO)
        assert result.exit_code == 0
        assert "2 committed" in result.output

        for tag in ("v1", "refs/tags/v1-final"):
            doc = stdout_json(cli("report-tag", tag, "--json"))
            assert doc[REPO]["sha"] == S1
        assert fake_git.clone_count == 2

    def test_unknown_tag(self, cli, repo):
        cli("ingest", REPO, S1, "--ref", MASTER)
        result = cli("report-tag", "v9")
        assert result.exit_code == 1


class TestHistoryCommands:
    def test_history(self, cli, repo):
        cli("ingest", REPO, S1, "--ref", MASTER)
        cli("ingest", REPO, S2, "--ref", MASTER)
        doc = stdout_json(cli("history", REPO, "--json"))
        assert doc["full_name"] == REPO
        assert doc["refs"][0]["order"] == [S2, S1]

        result = cli("history", REPO)
        assert result.exit_code == 0
        assert "refs/heads/master" in result.output

    def test_history_unknown(self, cli):
        assert cli("history", "org/none").exit_code == 1

    def test_layout(self, cli, repo):
        cli("ingest", REPO, S2, "--ref", MASTER)
        doc = stdout_json(cli("layout", REPO, "--depth", "5"))
        colors = {n["id"]: n["color"] for n in doc["nodes"]}
        assert colors == {S2: "good", S1: "bad"}
        assert doc["edges"] == [{"from": S2, "to": S1}]

    def test_layout_without_history(self, cli):
        assert cli("layout", "org/none").exit_code == 1

    def test_backfill(self, cli, repo):
        cli("ingest", REPO, S2, "--ref", MASTER)
        result = cli("backfill", REPO)
        assert result.exit_code == 0
        assert "1 committed" in result.output
        assert cli.services.scans.scan_exists(REPO, S1)

        result = cli("backfill", REPO)
        assert "fully scanned" in result.output

    def test_backfill_skips_unlabelled_commit(self, cli, repo):
        s3 = "3" * 40
        repo.add_commit(REPO, s3, {"requirements.txt": "django==4.2\n"}, parents=(S1,))
        cli("ingest", REPO, S2, "--ref", MASTER)
        result = cli("backfill", REPO)
        assert result.exit_code == 0
        assert "1 committed" in result.output
        assert not cli.services.scans.scan_exists(REPO, s3)
        assert cli.services.scans.list_refs(REPO) == [MASTER]


class TestDiffCommands:
    def test_diff(self, cli, repo):
        cli("ingest", REPO, S1, "--ref", MASTER)
        cli("ingest", REPO, S2, "--ref", MASTER)
        doc = stdout_json(cli("diff", REPO, S1, S2, "--json"))
        assert sorted((d["name"], d["version"]) for d in doc["added"]) == [
            ("flask", "2.1"),
            ("requests", "2.31.0"),
        ]
        assert [(d["name"], d["version"]) for d in doc["removed"]] == [("flask", "2.0")]

        result = cli("diff", REPO, S1, S2)
        assert result.exit_code == 0
        assert "+ requests" in result.output

    def test_diff_unknown_sha(self, cli, repo):
        cli("ingest", REPO, S1, "--ref", MASTER)
        result = cli("diff", REPO, S1, S2)
        assert result.exit_code == 1

    def test_differences(self, cli, repo):
        cli("ingest", REPO, S1, "--ref", MASTER)
        cli("ingest", REPO, S2, "--ref", MASTER)
        doc = stdout_json(cli("differences", REPO, "--json"))
        assert len(doc) == 1
        assert (doc[0]["old_sha"], doc[0]["new_sha"]) == (S1, S2)

    def test_no_differences(self, cli):
        result = cli("differences", "org/none")
        assert result.exit_code == 0
        assert "No dependency changes" in result.output


class TestWebhook:
    def test_payload_file(self, cli, repo, tmp_path):
        payloads = [
            {"ref": MASTER, "after": S1, "repository": {"full_name": REPO}},
            {"repositoryFullName": REPO, "afterSha": S2, "ref": MASTER},
            {"ref": MASTER, "after": "0" * 40, "repository": {"full_name": REPO}},
        ]
        path = tmp_path / "push.json"
        path.write_text(json.dumps(payloads))
        result = cli("webhook", str(path))
        assert result.exit_code == 0, result.output
        assert "2 committed" in result.output
        assert sorted(cli.services.scans.list_shas(REPO)[MASTER]) == [S1, S2]

    def test_line_delimited(self, cli, repo, tmp_path):
        path = tmp_path / "push.jsonl"
        path.write_text(json.dumps({"repositoryFullName": REPO, "afterSha": S1}) + "\n")
        result = cli("webhook", str(path))
        assert result.exit_code == 0, result.output
        assert cli.services.scans.scan_exists(REPO, S1)

    def test_failed_task_exits_non_zero(self, cli, repo, tmp_path):
        path = tmp_path / "push.json"
        path.write_text(json.dumps({"repositoryFullName": "org/missing", "afterSha": S1}))
        result = cli("webhook", str(path))
        assert result.exit_code == 1
        assert "1 failed" in result.output


class TestCacheCommands:
    @pytest.fixture
    def cached_config(self, test_config, tmp_path):
        return replace(test_config, cache_enabled=True, cache_dir=str(tmp_path / "cache"))

    def invoke(self, config, *args):
        return runner.invoke(app, ["-q", *args], obj={"config": config})

    def test_info_and_clear(self, cached_config, tmp_path):
        project = tmp_path / "project"
        project.mkdir()
        (project / "requirements.txt").write_text("flask==2.0\n")
        assert self.invoke(cached_config, "scan", str(project)).exit_code == 0

        result = self.invoke(cached_config, "cache-info")
        assert result.exit_code == 0
        assert "Entries: 1" in result.output

        result = self.invoke(cached_config, "cache-clear")
        assert result.exit_code == 0
        assert "Cache cleared" in result.output
        assert "Entries: 0" in self.invoke(cached_config, "cache-info").output

    def test_disabled(self, test_config):
        assert "Disabled" in self.invoke(test_config, "cache-info").output
        result = self.invoke(test_config, "cache-clear")
        assert result.exit_code == 0
        assert "Cache is disabled" in result.output
