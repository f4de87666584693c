"""Abstract document store."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

# Document types
DEPENDENCY = "dependency"
SCAN = "scan"
REPOSITORY = "repository"
HISTORY = "history"
DIFFERENCE = "difference"


@dataclass(frozen=True)
class Hit:
    """One search result."""

    id: str
    source: dict[str, Any]


class DocumentStore(ABC):
    """Keyed JSON document store with a query capability.

    Documents are addressed by (doc_type, doc_id). Every method is safe to
    call from several worker threads at once.
    """

    @abstractmethod
    def get(self, doc_type: str, doc_id: str) -> Optional[dict]:
        """Return the document, or None when it does not exist."""

    @abstractmethod
    def create_or_skip(self, doc_type: str, doc_id: str, doc: dict) -> bool:
        """Create the document unless it exists; True when it was created."""

    @abstractmethod
    def put(self, doc_type: str, doc_id: str, doc: dict) -> None:
        """Create or replace the document."""

    @abstractmethod
    def search(
        self,
        doc_type: str,
        query: Optional[dict] = None,
        size: Optional[int] = None,
        sort: Optional[list[tuple[str, str]]] = None,
    ) -> list[Hit]:
        """Documents of ``doc_type`` matching ``query``.

        Args:
            query: Query built with ``dephistory.storage.query``; None matches all
            size: Maximum number of hits
            sort: ``[(field, "asc"|"desc"), ...]``; unsorted hits come back in id order
        """

    def exists(self, doc_type: str, doc_id: str) -> bool:
        return self.get(doc_type, doc_id) is not None

    def count(self, doc_type: str) -> int:
        return len(self.search(doc_type))

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
