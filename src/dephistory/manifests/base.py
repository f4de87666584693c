"""Base manifest parser and the result type every parser returns."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from ..dependency import Dependency, Issue
from ..exceptions import ParseError


@dataclass
class ParseResult:
    """Dependencies and non-fatal issues found in one or more manifests."""

    dependencies: list[Dependency] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)

    def extend(self, other: "ParseResult") -> None:
        self.dependencies.extend(other.dependencies)
        self.issues.extend(other.issues)

    @classmethod
    def merge(cls, results: Iterable["ParseResult"]) -> "ParseResult":
        merged = cls()
        for result in results:
            merged.extend(result)
        return merged

    def to_document(self) -> dict:
        return {
            "dependencies": [d.to_document() for d in self.dependencies],
            "issues": [i.to_document() for i in self.issues],
        }

    @classmethod
    def from_document(cls, doc: dict) -> "ParseResult":
        return cls(
            dependencies=[Dependency.from_document(d) for d in doc.get("dependencies", [])],
            issues=[Issue.from_document(i) for i in doc.get("issues", [])],
        )


class ManifestParser(ABC):
    """Abstract base class for manifest parsers.

    A parser claims a set of file names. Pure parsers work on bytes and are
    safe to cache; parsers that shell out to a build tool work on the
    directory holding the manifest and set ``cacheable`` to False.
    """

    name: str = ""
    filenames: tuple[str, ...] = ()
    test_filenames: tuple[str, ...] = ()
    cacheable: bool = True

    def claims(self, filename: str) -> bool:
        return filename in self.filenames or filename in self.test_filenames

    @abstractmethod
    def parse(
        self, data: bytes, include_test: bool = True, companion_data: Optional[bytes] = None
    ) -> ParseResult:
        """Parse manifest bytes, plus the bytes of its companion file if present.

        Raises:
            ParseError: The document is malformed
            SchemaError: The document parses but has an unrecognized shape
        """

    def parse_file(self, path: Path, include_test: bool = True) -> ParseResult:
        """Parse the manifest at ``path``; overridden by tool-backed parsers."""
        extra = self.companion(path)
        companion_data = extra.read_bytes() if extra is not None and extra.is_file() else None
        return self.parse(path.read_bytes(), include_test, companion_data)

    def companion(self, path: Path) -> Optional[Path]:
        """Extra file parsed together with ``path``, if any."""
        return None


def decode(data: bytes, filename: Optional[str] = None) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(filename, f"not valid UTF-8: {e}")
