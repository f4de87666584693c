"""Scan store: entry-chain persistence and the read-side queries."""

from __future__ import annotations

from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional

from ..dependency import Dependency, Scan
from ..exceptions import NotFoundError
from ..logging_config import get_logger
from . import query as q
from .base import DEPENDENCY, REPOSITORY, SCAN, DocumentStore
from .chain import TAG_PREFIX, RepositoryRecord, ScanEntry, record_scan, repository_doc_id, resolve_hashes

logger = get_logger(__name__)


def scan_doc_id(full_name: str, sha: str) -> str:
    return f"{repository_doc_id(full_name)}_{sha}"


def tag_ref(tag: str) -> str:
    return tag if tag.startswith(TAG_PREFIX) else TAG_PREFIX + tag


class ScanStore:
    """Reads and writes scans, repository records and dependency documents.

    Mutating a repository record (``commit``) is not synchronized here;
    callers serialize commits per repository.
    """

    def __init__(self, store: DocumentStore, fetch_workers: int = 8, search_size: int = 1000):
        self.store = store
        self.fetch_workers = fetch_workers
        self.search_size = search_size

    # ── scans ─────────────────────────────────────────────────────

    def scan_exists(self, full_name: str, sha: str) -> bool:
        return self.store.exists(SCAN, scan_doc_id(full_name, sha))

    def get_scan(self, full_name: str, sha: str) -> dict:
        doc = self.store.get(SCAN, scan_doc_id(full_name, sha))
        if doc is None:
            raise NotFoundError("scan", f"{full_name}@{sha}")
        return doc

    def save_scan(self, scan: Scan, ref_name: Optional[str] = None) -> bool:
        """Write the Scan document once; True when it was created."""
        return self.store.create_or_skip(
            SCAN, scan_doc_id(scan.repo_fullname, scan.sha), scan.to_document(ref_name)
        )

    def put_dependencies(self, dependencies: Iterable[Dependency]) -> int:
        """Create-if-absent every dependency document; returns the number created."""
        created = 0
        for dep in dependencies:
            if self.store.create_or_skip(DEPENDENCY, dep.hashsum, dep.to_document()):
                created += 1
        return created

    # ── repository records ────────────────────────────────────────

    def load_repository(self, full_name: str) -> Optional[RepositoryRecord]:
        doc = self.store.get(REPOSITORY, repository_doc_id(full_name))
        return RepositoryRecord.from_document(doc) if doc is not None else None

    def get_repository(self, full_name: str) -> RepositoryRecord:
        record = self.load_repository(full_name)
        if record is None:
            raise NotFoundError("repository", full_name)
        return record

    def save_repository(self, record: RepositoryRecord) -> None:
        self.store.put(REPOSITORY, record.doc_id, record.to_document())

    def commit(self, full_name: str, ref_name: str, sha: str, hashes: Iterable[str]) -> ScanEntry:
        """Record ``sha`` on ``ref_name`` and persist the record in one put."""
        record = self.load_repository(full_name) or RepositoryRecord(full_name)
        entry = record_scan(record, ref_name, sha, hashes)
        self.save_repository(record)
        kind = f"reference to {entry.entry_reference[:7]}" if entry.is_reference else "full entry"
        logger.debug(f"{full_name} {ref_name} {sha[:7]}: {kind}")
        return entry

    # ── reads ─────────────────────────────────────────────────────

    def resolve_hashes(self, full_name: str, sha: str, ref_name: Optional[str] = None) -> list[str]:
        return resolve_hashes(self.get_repository(full_name), sha, ref_name)

    def fetch_dependencies(self, hashes: list[str]) -> list[Dependency]:
        """Dependency documents for ``hashes``, fetched concurrently, in input order."""
        results: list[Optional[dict]] = [None] * len(hashes)

        def fetch(index: int) -> None:
            results[index] = self.store.get(DEPENDENCY, hashes[index])

        if hashes:
            with ThreadPoolExecutor(max_workers=min(self.fetch_workers, len(hashes))) as pool:
                # list() re-raises the first worker exception
                list(pool.map(fetch, range(len(hashes))))

        dependencies = []
        for hashsum, doc in zip(hashes, results):
            if doc is None:
                raise NotFoundError("dependency", hashsum)
            dependencies.append(Dependency.from_document(doc))
        return dependencies

    def dependencies_at(self, full_name: str, sha: str, ref_name: Optional[str] = None) -> list[Dependency]:
        return self.fetch_dependencies(self.resolve_hashes(full_name, sha, ref_name))

    def list_shas(self, full_name: str) -> dict[str, list[str]]:
        record = self.get_repository(full_name)
        return {ref.name: list(ref.order) for ref in record.refs}

    def list_refs(self, full_name: str) -> list[str]:
        return [ref.name for ref in self.get_repository(full_name).refs]

    def list_repositories(self, org: Optional[str] = None) -> list[str]:
        query = q.wildcard("full_name", f"{org}/*") if org else q.match_all()
        hits = self.store.search(REPOSITORY, query, size=self.search_size)
        return sorted(hit.source["full_name"] for hit in hits)

    def _records(self, org: Optional[str], repo: Optional[str]) -> list[RepositoryRecord]:
        if repo:
            full_name = repo if "/" in repo or not org else f"{org}/{repo}"
            record = self.load_repository(full_name)
            return [record] if record is not None else []
        return [self.get_repository(name) for name in self.list_repositories(org)]

    def dependencies_by_ref(
        self, ref_name: str, org: Optional[str] = None, repo: Optional[str] = None
    ) -> dict[str, tuple[str, list[Dependency]]]:
        """Tip dependencies of ``ref_name`` for every matching repository."""
        out: dict[str, tuple[str, list[Dependency]]] = OrderedDict()
        for record in self._records(org, repo):
            ref = record.ref(ref_name)
            if ref is None or ref.tip is None:
                continue
            hashes = resolve_hashes(record, ref.tip, ref_name)
            out[record.full_name] = (ref.tip, self.fetch_dependencies(hashes))
        if not out:
            raise NotFoundError("ref", ref_name)
        return out

    def dependencies_by_tag(
        self, tag: str, org: Optional[str] = None, repo: Optional[str] = None
    ) -> dict[str, tuple[str, list[Dependency]]]:
        """Dependencies at ``tag`` for every matching repository, through the tag mapping."""
        ref_name = tag_ref(tag)
        out: dict[str, tuple[str, list[Dependency]]] = OrderedDict()
        for record in self._records(org, repo):
            sha = record.tag_sha(ref_name)
            if sha is None:
                continue
            out[record.full_name] = (sha, self.fetch_dependencies(resolve_hashes(record, sha)))
        if not out:
            raise NotFoundError("tag", ref_name)
        return out

    def search_dependency(
        self, name: str, version_prefix: str = "", repos: Optional[list[str]] = None
    ) -> dict[str, dict[str, list[str]]]:
        """Where a dependency is used: repo → ref → shas, newest scan first."""
        must = [q.bool_query(should=[q.term("name", name), q.term("name", name.lower())])]
        if version_prefix:
            must.append(q.wildcard("version", f"{version_prefix}*"))
        dep_hits = self.store.search(DEPENDENCY, q.bool_query(must=must), size=self.search_size)
        if not dep_hits:
            return {}

        scan_must = [q.terms("dependencies", [hit.id for hit in dep_hits])]
        if repos:
            scan_must.append(q.terms("repo_fullname", repos))
        scan_hits = self.store.search(
            SCAN,
            q.bool_query(must=scan_must),
            size=self.search_size,
            sort=[("timestamp", "desc")],
        )

        out: dict[str, dict[str, list[str]]] = OrderedDict()
        for hit in scan_hits:
            doc = hit.source
            refs = out.setdefault(doc["repo_fullname"], OrderedDict())
            refs.setdefault(doc.get("ref_name") or "", []).append(doc["sha"])
        return out
