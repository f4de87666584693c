"""Difference engine: what changed between two recorded shas."""

from typing import Iterable, Optional

from ..dependency import sort_key
from ..logging_config import get_logger
from ..storage import query as q
from ..storage.base import DIFFERENCE
from ..storage.scans import ScanStore
from .models import DependencyDiff

logger = get_logger(__name__)


def diff_hashes(old: Iterable[str], new: Iterable[str]) -> tuple[list[str], list[str]]:
    """(added, removed) hashes going from ``old`` to ``new``, each sorted."""
    old_set, new_set = set(old), set(new)
    return sorted(new_set - old_set), sorted(old_set - new_set)


class DifferenceEngine:
    def __init__(self, scans: ScanStore):
        self.scans = scans

    def diff(
        self, full_name: str, old_sha: str, new_sha: str, ref_name: Optional[str] = None
    ) -> DependencyDiff:
        """Resolve both entries (one hop each) and diff their dependencies.

        Raises:
            NotFoundError: Either sha is not recorded
        """
        old_hashes = self.scans.resolve_hashes(full_name, old_sha, ref_name)
        new_hashes = self.scans.resolve_hashes(full_name, new_sha, ref_name)
        added, removed = diff_hashes(old_hashes, new_hashes)
        return DependencyDiff(
            repo=full_name,
            ref=ref_name or "",
            old_sha=old_sha,
            new_sha=new_sha,
            added=tuple(sorted(self.scans.fetch_dependencies(added), key=sort_key)),
            removed=tuple(sorted(self.scans.fetch_dependencies(removed), key=sort_key)),
        )

    def compare_tip(self, full_name: str, ref_name: str) -> Optional[DependencyDiff]:
        """Diff the tip of ``ref_name`` against the previous entry; persist non-empty diffs."""
        record = self.scans.get_repository(full_name)
        ref = record.ref(ref_name)
        if ref is None or len(ref.order) < 2:
            return None
        return self.record_difference(full_name, ref_name, ref.order[1], ref.order[0])

    def record_difference(
        self, full_name: str, ref_name: str, old_sha: str, new_sha: str
    ) -> Optional[DependencyDiff]:
        """Diff two entries of ``ref_name`` and persist the result unless it is empty."""
        diff = self.diff(full_name, old_sha, new_sha, ref_name)
        if diff.is_empty:
            return None
        self.scans.store.put(DIFFERENCE, diff.doc_id, diff.to_document())
        logger.info(
            f"{full_name} {ref_name}: {old_sha[:7]}..{new_sha[:7]} "
            f"+{len(diff.added)} -{len(diff.removed)}"
        )
        return diff

    def list_differences(self, full_name: str) -> list[DependencyDiff]:
        """Persisted differences of ``full_name``, newest first."""
        hits = self.scans.store.search(
            DIFFERENCE,
            q.term("repo", full_name),
            size=self.scans.search_size,
            sort=[("timestamp", "desc")],
        )
        return [DependencyDiff.from_document(hit.source) for hit in hits]
