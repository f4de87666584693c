"""Resolve every manifest of a checkout into one Scan."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional

from ..dependency import Scan, canonicalize
from ..exceptions import ManifestError
from ..logging_config import get_logger
from .base import ManifestParser, ParseResult
from .discovery import find_manifests
from .registry import ParserRegistry

if TYPE_CHECKING:
    from ..cache import ParseCache

logger = get_logger(__name__)


def parse_manifest(
    path: Path,
    parser: ManifestParser,
    include_test: bool = True,
    cache: Optional[ParseCache] = None,
) -> ParseResult:
    """Parse one manifest, going through ``cache`` for pure parsers."""
    if cache is None or not parser.cacheable:
        return parser.parse_file(path, include_test)

    data = path.read_bytes()
    extra = parser.companion(path)
    companion = extra.read_bytes() if extra is not None and extra.is_file() else None
    key = cache.key(parser.name, include_test, data, companion)
    cached = cache.get(key)
    if cached is not None:
        return cached
    result = parser.parse(data, include_test, companion)
    cache.set(key, result)
    return result


def resolve_files(
    root: Path,
    files: Iterable[str],
    registry: ParserRegistry,
    include_test: bool = True,
    cache: Optional[ParseCache] = None,
) -> tuple[ParseResult, list[str]]:
    """Parse ``files`` (relative to ``root``) and merge the results.

    A file consumed as another manifest's companion is not parsed twice.

    Returns:
        (merged result, relative paths actually scanned)

    Raises:
        ParseError, SchemaError: tagged with the relative path of the file
    """
    files = list(files)
    consumed: set[str] = set()
    for rel in files:
        parser = registry.parser_for(Path(rel).name)
        if parser is None:
            continue
        extra = parser.companion(root / rel)
        if extra is not None:
            consumed.add(extra.relative_to(root).as_posix())

    merged = ParseResult()
    scanned: list[str] = []
    for rel in files:
        parser = registry.parser_for(Path(rel).name)
        if parser is None or rel in consumed:
            continue
        try:
            result = parse_manifest(root / rel, parser, include_test, cache)
        except ManifestError as e:
            raise e.with_filename(rel) from e
        logger.debug(f"{rel}: {len(result.dependencies)} dependencies via {parser.name}")
        merged.extend(result)
        scanned.append(rel)
    return merged, scanned


def resolve_project(
    root: Path,
    registry: ParserRegistry,
    repo_fullname: str = "",
    sha: str = "",
    refs: Iterable[str] = (),
    include_test: bool = True,
    cache: Optional[ParseCache] = None,
) -> Scan:
    """Discover, parse, deduplicate and sort the dependencies of a checkout."""
    root = Path(root)
    files = find_manifests(root, registry, include_test)
    result, scanned = resolve_files(root, files, registry, include_test, cache)
    dependencies = canonicalize(result.dependencies)
    logger.info(
        f"Resolved {len(dependencies)} dependencies from {len(scanned)} manifests"
        + (f" for {repo_fullname}@{sha[:7]}" if repo_fullname else "")
    )
    return Scan(
        repo_fullname=repo_fullname,
        sha=sha,
        refs=tuple(refs),
        dependencies=tuple(dependencies),
        issues=tuple(result.issues),
        files_scanned=tuple(scanned),
    )
