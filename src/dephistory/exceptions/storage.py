"""Storage exceptions: missing documents and backend failures."""

from .base import DepHistoryError


class StorageError(DepHistoryError):
    """Base class for storage-related errors."""

    pass


class NotFoundError(StorageError):
    """Raised when a sha, ref, tag or repository is not recorded.

    Surfaced to the caller, never retried.
    """

    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} not found: {key}", details={"kind": kind, "key": key})
        self.kind = kind
        self.key = key


class StoreError(StorageError):
    """Raised when the document store is unavailable or inconsistent.

    Ingestion tasks that hit it are dropped; re-delivering them is safe
    because the exist-check stage is idempotent.
    """

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Document store failure during {operation}",
            details={"operation": operation, "reason": reason},
        )
        self.operation = operation
        self.reason = reason
