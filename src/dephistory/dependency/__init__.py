"""Dependency model, stable hashing and deduplication."""

from .dedup import canonicalize, hash_list, remove_exact_duplicates, sort_key
from .models import Dependency, Ecosystem, Issue, Scan, WeakVersion

__all__ = [
    "Dependency",
    "Ecosystem",
    "Issue",
    "Scan",
    "WeakVersion",
    "canonicalize",
    "hash_list",
    "remove_exact_duplicates",
    "sort_key",
]
