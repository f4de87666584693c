"""Per-ref entry chains with one-hop reference deduplication.

Every ref of a repository keeps its shas newest first. A sha whose
dependency hashes equal those of the nearest realized entry at the front of
the ref stores only a reference to that entry's sha, so a run of commits that
leave dependencies untouched costs one hash list.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from ..exceptions import NotFoundError, StoreError

TAG_PREFIX = "refs/tags/"
HEAD_PREFIX = "refs/heads/"


def repository_doc_id(full_name: str) -> str:
    return full_name.replace("/", "_")


@dataclass
class ScanEntry:
    """Either a realized hash list or a reference to a realized entry."""

    sha: str
    dependencies: Optional[list[str]] = None
    entry_reference: Optional[str] = None

    @property
    def is_reference(self) -> bool:
        return self.entry_reference is not None

    def to_document(self) -> dict[str, Any]:
        return {
            "sha": self.sha,
            "dependencies": self.dependencies,
            "entry_reference": self.entry_reference,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "ScanEntry":
        return cls(
            sha=doc["sha"],
            dependencies=doc.get("dependencies"),
            entry_reference=doc.get("entry_reference"),
        )


@dataclass
class RefRecord:
    name: str
    order: list[str] = field(default_factory=list)
    entries: dict[str, ScanEntry] = field(default_factory=dict)

    @property
    def tip(self) -> Optional[str]:
        return self.order[0] if self.order else None

    def nearest_realized(self) -> Optional[ScanEntry]:
        """The realized entry at the front of the order, one hop at most."""
        if not self.order:
            return None
        front = self.entries[self.order[0]]
        if not front.is_reference:
            return front
        target = self.entries.get(front.entry_reference)
        if target is None or target.is_reference:
            raise StoreError("read", f"{self.name}: {front.sha} does not resolve in one hop")
        return target

    def to_document(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "order": list(self.order),
            "entries": [self.entries[sha].to_document() for sha in self.order],
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "RefRecord":
        entries = [ScanEntry.from_document(e) for e in doc.get("entries", [])]
        return cls(
            name=doc["name"],
            order=list(doc.get("order", [])),
            entries={e.sha: e for e in entries},
        )


@dataclass
class TagSha:
    tag: str
    sha: str


@dataclass
class RepositoryRecord:
    """All refs, entry chains and tag mappings of one repository."""

    full_name: str
    refs: list[RefRecord] = field(default_factory=list)
    tag_shas: list[TagSha] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.full_name.split("/", 1)[-1]

    @property
    def doc_id(self) -> str:
        return repository_doc_id(self.full_name)

    def ref(self, name: str) -> Optional[RefRecord]:
        for ref in self.refs:
            if ref.name == name:
                return ref
        return None

    def ensure_ref(self, name: str) -> RefRecord:
        ref = self.ref(name)
        if ref is None:
            ref = RefRecord(name)
            self.refs.append(ref)
        return ref

    def has_sha(self, sha: str) -> bool:
        return any(sha in ref.entries for ref in self.refs)

    def tag_sha(self, tag: str) -> Optional[str]:
        for mapping in self.tag_shas:
            if mapping.tag == tag:
                return mapping.sha
        return None

    def set_tag(self, tag: str, sha: str) -> None:
        for mapping in self.tag_shas:
            if mapping.tag == tag:
                mapping.sha = sha
                return
        self.tag_shas.append(TagSha(tag, sha))

    def to_document(self) -> dict[str, Any]:
        return {
            "full_name": self.full_name,
            "name": self.name,
            "refs": [r.to_document() for r in self.refs],
            "tag_shas": [{"tag": t.tag, "sha": t.sha} for t in self.tag_shas],
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "RepositoryRecord":
        return cls(
            full_name=doc["full_name"],
            refs=[RefRecord.from_document(r) for r in doc.get("refs", [])],
            tag_shas=[TagSha(t["tag"], t["sha"]) for t in doc.get("tag_shas", [])],
        )


def validate_entry(ref: RefRecord, entry: ScanEntry) -> None:
    """Exactly one of hashes/reference; a reference must target a realized entry."""
    if (entry.dependencies is None) == (entry.entry_reference is None):
        raise StoreError("validate", f"{entry.sha}: entry needs exactly one of hashes or reference")
    if entry.is_reference:
        target = ref.entries.get(entry.entry_reference)
        if target is None:
            raise StoreError("validate", f"{entry.sha}: reference target {entry.entry_reference} missing")
        if target.is_reference:
            raise StoreError("validate", f"{entry.sha}: reference target is itself a reference")


def record_scan(record: RepositoryRecord, ref_name: str, sha: str, hashes: Iterable[str]) -> ScanEntry:
    """Add ``sha`` at the front of ``ref_name``.

    Re-recording a sha already present on the ref returns the existing entry
    unchanged.
    """
    ref = record.ensure_ref(ref_name)
    existing = ref.entries.get(sha)
    if existing is not None:
        return existing

    hash_list = sorted(set(hashes))
    target = ref.nearest_realized()
    if target is not None and set(target.dependencies or ()) == set(hash_list):
        entry = ScanEntry(sha, entry_reference=target.sha)
    else:
        entry = ScanEntry(sha, dependencies=hash_list)

    validate_entry(ref, entry)
    ref.order.insert(0, sha)
    ref.entries[sha] = entry
    if ref_name.startswith(TAG_PREFIX):
        record.set_tag(ref_name, sha)
    return entry


def find_entry(record: RepositoryRecord, sha: str, ref_name: Optional[str] = None) -> tuple[RefRecord, ScanEntry]:
    refs = [record.ref(ref_name)] if ref_name else record.refs
    for ref in refs:
        if ref is not None and sha in ref.entries:
            return ref, ref.entries[sha]
    raise NotFoundError("sha", f"{record.full_name}@{sha}")


def resolve_hashes(record: RepositoryRecord, sha: str, ref_name: Optional[str] = None) -> list[str]:
    """Hash list of ``sha``, following at most one reference hop."""
    ref, entry = find_entry(record, sha, ref_name)
    if not entry.is_reference:
        return list(entry.dependencies or [])
    target = ref.entries.get(entry.entry_reference)
    if target is None:
        raise StoreError("resolve", f"{sha}: reference target {entry.entry_reference} missing")
    if target.is_reference:
        raise StoreError("resolve", f"{sha}: reference chain longer than one hop")
    return list(target.dependencies or [])
