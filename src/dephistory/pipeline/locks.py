"""Per-key mutual exclusion."""

import threading
from contextlib import contextmanager
from typing import Iterator


class KeyedLock:
    """One lock per key, alive while a holder or waiter needs it.

    Commits for different repositories run in parallel; commits for the same
    repository are serialized.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> [lock, holders and waiters]
        self._locks: dict[str, list] = {}

    def _acquire_slot(self, key: str) -> threading.Lock:
        with self._guard:
            slot = self._locks.get(key)
            if slot is None:
                slot = self._locks[key] = [threading.Lock(), 0]
            slot[1] += 1
            return slot[0]

    def _release_slot(self, key: str) -> None:
        with self._guard:
            slot = self._locks[key]
            slot[1] -= 1
            if slot[1] == 0:
                del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self._acquire_slot(key)
        try:
            with lock:
                yield
        finally:
            self._release_slot(key)
