"""Document stores, entry chains and the scan store."""

from .base import DEPENDENCY, DIFFERENCE, HISTORY, REPOSITORY, SCAN, DocumentStore, Hit
from .chain import (
    RefRecord,
    RepositoryRecord,
    ScanEntry,
    TagSha,
    find_entry,
    record_scan,
    repository_doc_id,
    resolve_hashes,
    validate_entry,
)
from .memory import InMemoryDocumentStore
from .scans import ScanStore, scan_doc_id, tag_ref
from .sqlite import SQLiteDocumentStore


def open_store(backend: str, path: str) -> DocumentStore:
    """Document store for a configured backend name."""
    if backend == "memory":
        return InMemoryDocumentStore()
    return SQLiteDocumentStore(path)


__all__ = [
    "DEPENDENCY",
    "DIFFERENCE",
    "HISTORY",
    "REPOSITORY",
    "SCAN",
    "DocumentStore",
    "Hit",
    "InMemoryDocumentStore",
    "SQLiteDocumentStore",
    "open_store",
    "RefRecord",
    "RepositoryRecord",
    "ScanEntry",
    "TagSha",
    "ScanStore",
    "find_entry",
    "record_scan",
    "repository_doc_id",
    "resolve_hashes",
    "scan_doc_id",
    "tag_ref",
    "validate_entry",
]
