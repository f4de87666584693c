"""Tests for ingestion tasks and per-key locks."""

import threading
import time

import pytest

from dephistory.dependency import Scan
from dephistory.exceptions import SchemaError
from dephistory.pipeline import IngestionTask, KeyedLock, ResolvedScan
from dephistory.pipeline.tasks import NULL_SHA

SHA = "3f2c1e0d" * 5


class TestFromWebhook:
    def test_github_push_payload(self):
        payload = {
            "ref": "refs/heads/master",
            "before": "0" * 40,
            "after": SHA,
            "repository": {"full_name": "org/repo", "name": "repo"},
        }
        assert IngestionTask.from_webhook(payload) == IngestionTask("org/repo", SHA, "refs/heads/master")

    def test_flat_form(self):
        task = IngestionTask.from_webhook({"repositoryFullName": "org/repo", "afterSha": SHA})
        assert task == IngestionTask("org/repo", SHA, "")

    def test_snake_case_flat_form(self):
        task = IngestionTask.from_webhook({"repository_full_name": "org/repo", "after_sha": SHA, "ref": "refs/tags/v1"})
        assert task.ref == "refs/tags/v1"

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"afterSha": SHA},
            {"repositoryFullName": "repo-without-owner", "afterSha": SHA},
            {"repositoryFullName": "org/repo"},
            {"repository": {"full_name": "org/repo"}, "after": NULL_SHA, "ref": "refs/heads/gone"},
        ],
    )
    def test_invalid(self, payload):
        with pytest.raises(SchemaError):
            IngestionTask.from_webhook(payload)

    def test_not_an_object(self):
        with pytest.raises(SchemaError):
            IngestionTask.from_webhook(["org/repo", SHA])

    def test_str(self):
        assert str(IngestionTask("org/repo", SHA)) == "org/repo@3f2c1e0"


class TestResolvedScan:
    def test_ref_prefers_task_ref(self):
        task = IngestionTask("org/repo", SHA, "refs/heads/dev")
        scan = Scan("org/repo", SHA, refs=("refs/heads/master",))
        assert ResolvedScan(task, scan, []).ref == "refs/heads/dev"

    def test_ref_falls_back_to_scan_refs(self):
        task = IngestionTask("org/repo", SHA)
        assert ResolvedScan(task, Scan("org/repo", SHA, refs=("refs/heads/master",)), []).ref == "refs/heads/master"
        assert ResolvedScan(task, Scan("org/repo", SHA), []).ref == ""


class TestKeyedLock:
    def test_same_key_serialized(self):
        locks = KeyedLock()
        inside = []
        overlaps = []

        def worker():
            with locks.hold("org/repo"):
                inside.append(1)
                if len(inside) > 1:
                    overlaps.append(1)
                time.sleep(0.01)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert overlaps == []

    def test_different_keys_independent(self):
        locks = KeyedLock()
        with locks.hold("org/a"):
            acquired = threading.Event()

            def other():
                with locks.hold("org/b"):
                    acquired.set()

            t = threading.Thread(target=other)
            t.start()
            assert acquired.wait(timeout=5)
            t.join()

    def test_released_keys_dropped(self):
        locks = KeyedLock()
        for i in range(50):
            with locks.hold(f"org/r{i}"):
                assert len(locks) == 1
        assert len(locks) == 0

    def test_lock_kept_while_waiter_queued(self):
        locks = KeyedLock()
        entered = threading.Event()
        with locks.hold("org/repo"):
            def waiter():
                with locks.hold("org/repo"):
                    entered.set()

            t = threading.Thread(target=waiter)
            t.start()
            time.sleep(0.05)
            assert not entered.is_set()
            assert len(locks) == 1
        t.join(timeout=5)
        assert entered.is_set()
        assert len(locks) == 0
