"""Set and sort operations over dependency lists."""

from typing import Iterable, List

from .models import Dependency


def remove_exact_duplicates(dependencies: Iterable[Dependency]) -> List[Dependency]:
    """Drop later occurrences of an already seen identity, keeping order."""
    seen: set[tuple[str, str, str]] = set()
    result: List[Dependency] = []
    for dep in dependencies:
        key = dep.identity
        if key in seen:
            continue
        seen.add(key)
        result.append(dep)
    return result


def sort_key(dep: Dependency) -> tuple[str, str, str]:
    """Canonical (name, version, ecosystem) ordering on normalized values."""
    return dep.identity


def canonicalize(dependencies: Iterable[Dependency]) -> List[Dependency]:
    """Deduplicate then sort: the form stored on a scan."""
    return sorted(remove_exact_duplicates(dependencies), key=sort_key)


def hash_list(dependencies: Iterable[Dependency]) -> List[str]:
    """Sorted, unique dependency hashes."""
    return sorted({d.hashsum for d in dependencies})
