"""Canonical dependency model shared by every manifest format."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class Ecosystem(str, Enum):
    """Packaging system a dependency belongs to."""

    JAVA = "java"
    JAVASCRIPT = "javascript"
    GO = "go"
    PYTHON = "python"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str) -> "Ecosystem":
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class Dependency:
    """A declared third-party dependency.

    ``version`` is the declared version or range as written in the manifest;
    an empty string means unconstrained.
    """

    name: str
    version: str
    ecosystem: Ecosystem

    @property
    def identity(self) -> tuple[str, str, str]:
        return (self.name.strip().lower(), (self.version or "").strip(), self.ecosystem.value)

    @property
    def hashsum(self) -> str:
        """SHA-256 of the identity; stable across processes and platforms."""
        raw = json.dumps(list(self.identity), separators=(",", ":"))
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def to_document(self) -> dict[str, str]:
        return {
            "hashsum": self.hashsum,
            "name": self.name,
            "version": self.version,
            "language": self.ecosystem.value,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Dependency":
        return cls(
            name=doc["name"],
            version=doc.get("version") or "",
            ecosystem=Ecosystem.parse(doc.get("language", "")),
        )

    def __str__(self) -> str:
        version = self.version or "*"
        return f"{self.name}:{version}:{self.ecosystem.value}"


@dataclass(frozen=True)
class Issue:
    """Non-fatal finding attached to a scan."""

    kind: str
    name: str
    detail: str = ""

    def to_document(self) -> dict[str, str]:
        return {"kind": self.kind, "name": self.name, "detail": self.detail}

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Issue":
        if doc.get("kind") == WeakVersion.KIND:
            return WeakVersion.from_detail(doc["name"], doc.get("detail", ""))
        return cls(kind=doc.get("kind", ""), name=doc.get("name", ""), detail=doc.get("detail", ""))

    def __str__(self) -> str:
        return f"{self.kind}: {self.name} {self.detail}".rstrip()


@dataclass(frozen=True)
class WeakVersion(Issue):
    """A manifest pins a range or wildcard instead of an exact version."""

    KIND = "weak_version"

    version_range: str = ""
    operator: str = ""

    @classmethod
    def create(cls, name: str, version_range: str, operator: str) -> "WeakVersion":
        return cls(
            kind=cls.KIND,
            name=name,
            detail=f"{operator}{version_range}",
            version_range=version_range,
            operator=operator,
        )

    @classmethod
    def from_detail(cls, name: str, detail: str) -> "WeakVersion":
        operator = ""
        for op in ("===", "==", "~=", "!=", "<=", ">=", "<", ">", "^", "~", "="):
            if detail.startswith(op):
                operator = op
                break
        return cls.create(name, detail[len(operator):], operator)

    def __str__(self) -> str:
        if not self.version_range and not self.operator:
            return f"Weak version found for [{self.name}]: unconstrained"
        return f"Weak version found for [{self.name}]: [{self.operator}{self.version_range}]"


@dataclass(frozen=True)
class Scan:
    """Dependency snapshot of one repository at one sha.

    Created once per (repo_fullname, sha); ``dependencies`` is sorted and
    unique by identity.
    """

    repo_fullname: str
    sha: str
    refs: tuple[str, ...] = ()
    dependencies: tuple[Dependency, ...] = ()
    issues: tuple[Issue, ...] = ()
    files_scanned: tuple[str, ...] = ()
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def repo_name(self) -> str:
        return self.repo_fullname.split("/", 1)[-1]

    @property
    def hashes(self) -> list[str]:
        """Sorted dependency hashes."""
        return sorted(d.hashsum for d in self.dependencies)

    def to_document(self, ref_name: Optional[str] = None) -> dict[str, Any]:
        return {
            "repo_fullname": self.repo_fullname,
            "repo_name": self.repo_name,
            "ref_name": ref_name or (self.refs[0] if self.refs else ""),
            "sha": self.sha,
            "timestamp": self.timestamp,
            "dependencies": self.hashes,
            "refs": list(self.refs),
            "files": list(self.files_scanned),
            "issues": [i.to_document() for i in self.issues],
        }
