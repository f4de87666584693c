"""Three-stage threaded ingestion pipeline.

Stage 1 drops tasks whose sha is already scanned, stage 2 checks the sha out
and resolves its dependencies, stage 3 records the entry, merges history and
writes the scan. Stages are connected by bounded queues; a failing task is
logged and dropped without stopping its worker.
"""

from __future__ import annotations

import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Optional

from ..diff.engine import DifferenceEngine
from ..exceptions import NotFoundError
from ..history.builder import HistoryStore
from ..logging_config import get_logger
from ..storage.scans import ScanStore
from .locks import KeyedLock
from .resolver import TaskResolver
from .tasks import IngestionTask, ResolvedScan

logger = get_logger(__name__)

COMMITTED = "committed"
SKIPPED = "skipped"
FAILED = "failed"

_STOP = object()


class IngestionPipeline:
    """Exist-check → resolve → commit over bounded queues.

    Usage::

        pipeline = IngestionPipeline(scans, resolver, workers=4)
        pipeline.start()
        pipeline.submit(task)
        pipeline.join()
        pipeline.shutdown()
    """

    def __init__(
        self,
        scans: ScanStore,
        resolver: TaskResolver,
        history_store: Optional[HistoryStore] = None,
        diff_engine: Optional[DifferenceEngine] = None,
        workers: int = 4,
        queue_capacity: int = 1000,
    ):
        self.scans = scans
        self.resolver = resolver
        self.history_store = history_store
        self.diff_engine = diff_engine
        self.workers = workers

        self._check_queue: queue.Queue = queue.Queue(maxsize=queue_capacity)
        self._resolve_queue: queue.Queue = queue.Queue(maxsize=queue_capacity)
        self._commit_queue: queue.Queue = queue.Queue(maxsize=queue_capacity)
        self._repo_locks = KeyedLock()

        self._background = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dephistory-bg")
        self._pending: set[Future] = set()
        self._pending_lock = threading.Lock()

        self._threads: list[list[threading.Thread]] = [[], [], []]
        self._started = False
        self._cancelled = threading.Event()

        self._counts_lock = threading.Lock()
        self.committed = 0
        self.skipped = 0
        self.failed = 0

    # ── counters ──────────────────────────────────────────────────

    def _count(self, outcome: str) -> str:
        with self._counts_lock:
            setattr(self, outcome, getattr(self, outcome) + 1)
        return outcome

    def stats(self) -> dict[str, int]:
        with self._counts_lock:
            return {COMMITTED: self.committed, SKIPPED: self.skipped, FAILED: self.failed}

    # ── background writes ─────────────────────────────────────────

    def _submit_background(self, description: str, fn: Callable[..., Any], *args: Any) -> Future:
        future = self._background.submit(fn, *args)
        with self._pending_lock:
            self._pending.add(future)

        def done(f: Future) -> None:
            with self._pending_lock:
                self._pending.discard(f)
            if f.cancelled():
                return
            error = f.exception()
            if error is not None:
                logger.error(f"{description} failed: {error}", exc_info=error)

        future.add_done_callback(done)
        return future

    def wait_background(self) -> None:
        """Block until every background write submitted so far has finished."""
        while True:
            with self._pending_lock:
                pending = list(self._pending)
            if not pending:
                return
            wait(pending)

    # ── stages ────────────────────────────────────────────────────

    def exist_check(self, task: IngestionTask) -> bool:
        """Stage 1: True when the task still needs scanning."""
        if self.scans.scan_exists(task.repository_full_name, task.after_sha):
            logger.debug(f"[check] {task}: already scanned")
            self._count(SKIPPED)
            return False
        return True

    def resolve(self, task: IngestionTask) -> ResolvedScan:
        """Stage 2: resolve dependencies and start writing their documents."""
        resolved = self.resolver.resolve(task)
        resolved.dependency_write = self._submit_background(
            f"[resolve] {task}: dependency write",
            self.scans.put_dependencies,
            list(resolved.scan.dependencies),
        )
        resolved.hashes = sorted(resolved.hashes)
        logger.debug(f"[resolve] {task}: {len(resolved.hashes)} dependencies")
        return resolved

    def commit(self, resolved: ResolvedScan) -> str:
        """Stage 3: record the entry, merge history and write the scan."""
        task = resolved.task
        repo = task.repository_full_name
        ref = resolved.ref
        if not ref:
            raise NotFoundError("ref", str(task))
        # An entry is recorded only once its dependency documents exist
        if resolved.dependency_write is not None:
            resolved.dependency_write.result()
        with self._repo_locks.hold(repo):
            record = self.scans.load_repository(repo)
            if record is not None and record.has_sha(task.after_sha):
                self.scans.save_scan(resolved.scan, ref)
                logger.debug(f"[commit] {task}: entry exists")
                return self._count(SKIPPED)

            previous = record.ref(ref) if record is not None else None
            previous_tip = previous.tip if previous is not None else None
            entry = self.scans.commit(repo, ref, task.after_sha, resolved.hashes)
            if self.history_store is not None and resolved.history is not None:
                self.history_store.merge(repo, resolved.history)
            self.scans.save_scan(resolved.scan, ref)

        kind = "reference" if entry.is_reference else "full"
        logger.info(f"[commit] {task} on {ref}: {kind} entry, {len(resolved.hashes)} dependencies")
        if self.diff_engine is not None and previous_tip is not None:
            self._submit_background(
                f"[diff] {task}",
                self.diff_engine.record_difference,
                repo,
                ref,
                previous_tip,
                task.after_sha,
            )
        return self._count(COMMITTED)

    def record_ref(self, full_name: str, ref: str, sha: str) -> str:
        """Add an already scanned sha to ``ref`` without checking it out again."""
        doc = self.scans.get_scan(full_name, sha)
        with self._repo_locks.hold(full_name):
            record = self.scans.load_repository(full_name)
            existing = record.ref(ref) if record is not None else None
            if existing is not None and sha in existing.entries:
                return self._count(SKIPPED)
            self.scans.commit(full_name, ref, sha, doc.get("dependencies", []))
        logger.info(f"[commit] {full_name}@{sha[:7]} on {ref}: from existing scan")
        return self._count(COMMITTED)

    def run_once(self, task: IngestionTask) -> str:
        """Run all three stages synchronously; returns the outcome.

        Errors propagate to the caller and are counted as failures.
        """
        try:
            if not self.exist_check(task):
                return SKIPPED
            outcome = self.commit(self.resolve(task))
        except Exception:
            self._count(FAILED)
            raise
        finally:
            self.wait_background()
        return outcome

    # ── threaded operation ────────────────────────────────────────

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        loops = (self._check_loop, self._resolve_loop, self._commit_loop)
        for stage, loop in enumerate(loops):
            for i in range(self.workers):
                thread = threading.Thread(
                    target=loop, name=f"dephistory-stage{stage + 1}-{i}", daemon=True
                )
                thread.start()
                self._threads[stage].append(thread)
        logger.debug(f"Pipeline started with {self.workers} workers per stage")

    def submit(self, task: IngestionTask) -> None:
        """Queue ``task``; blocks while the first queue is full."""
        if not self._started:
            self.start()
        self._check_queue.put(task)

    def _check_loop(self) -> None:
        while True:
            task = self._check_queue.get()
            try:
                if task is _STOP:
                    return
                if self._cancelled.is_set():
                    continue
                if self.exist_check(task):
                    self._resolve_queue.put(task)
            except Exception:
                self._count(FAILED)
                logger.exception(f"[check] {task}: failed")
            finally:
                self._check_queue.task_done()

    def _resolve_loop(self) -> None:
        while True:
            task = self._resolve_queue.get()
            try:
                if task is _STOP:
                    return
                if self._cancelled.is_set():
                    continue
                self._commit_queue.put(self.resolve(task))
            except Exception:
                self._count(FAILED)
                logger.exception(f"[resolve] {task}: failed")
            finally:
                self._resolve_queue.task_done()

    def _commit_loop(self) -> None:
        while True:
            resolved = self._commit_queue.get()
            try:
                if resolved is _STOP:
                    return
                self.commit(resolved)
            except Exception:
                self._count(FAILED)
                logger.exception(f"[commit] {resolved.task}: failed")
            finally:
                self._commit_queue.task_done()

    def join(self) -> None:
        """Block until every queued task and background write is done."""
        self._check_queue.join()
        self._resolve_queue.join()
        self._commit_queue.join()
        self.wait_background()

    def shutdown(self, cancel_pending: bool = False) -> None:
        """Stop the workers.

        With ``cancel_pending`` queued tasks that have not started resolving
        are discarded; work already in stage 2 or 3 always completes.
        """
        if cancel_pending:
            self._cancelled.set()
        if self._started:
            queues = (self._check_queue, self._resolve_queue, self._commit_queue)
            for stage, work_queue in enumerate(queues):
                for _ in self._threads[stage]:
                    work_queue.put(_STOP)
                for thread in self._threads[stage]:
                    thread.join()
            self._started = False
        self.wait_background()
        self._background.shutdown(wait=True)
        logger.debug(f"Pipeline stopped: {self.stats()}")
