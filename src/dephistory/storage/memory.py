"""In-process document store, used by tests and ``--store memory`` runs."""

import copy
import threading
from typing import Optional

from .base import DocumentStore, Hit
from .query import matches, sort_documents


class InMemoryDocumentStore(DocumentStore):
    def __init__(self) -> None:
        self._docs: dict[str, dict[str, dict]] = {}
        self._lock = threading.RLock()

    def get(self, doc_type: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            doc = self._docs.get(doc_type, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def create_or_skip(self, doc_type: str, doc_id: str, doc: dict) -> bool:
        with self._lock:
            bucket = self._docs.setdefault(doc_type, {})
            if doc_id in bucket:
                return False
            bucket[doc_id] = copy.deepcopy(doc)
            return True

    def put(self, doc_type: str, doc_id: str, doc: dict) -> None:
        with self._lock:
            self._docs.setdefault(doc_type, {})[doc_id] = copy.deepcopy(doc)

    def search(
        self,
        doc_type: str,
        query: Optional[dict] = None,
        size: Optional[int] = None,
        sort: Optional[list[tuple[str, str]]] = None,
    ) -> list[Hit]:
        with self._lock:
            bucket = self._docs.get(doc_type, {})
            hits = [
                Hit(doc_id, copy.deepcopy(doc))
                for doc_id, doc in sorted(bucket.items())
                if matches(doc, query)
            ]
        hits = sort_documents(hits, sort)
        return hits[:size] if size is not None else hits

    def count(self, doc_type: str) -> int:
        with self._lock:
            return len(self._docs.get(doc_type, {}))
