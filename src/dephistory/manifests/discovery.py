"""Locate manifest files in a checkout."""

import os
from pathlib import Path

from .registry import ParserRegistry

SKIP_DIRS = frozenset({".git", "vendor", "node_modules"})


def find_manifests(root: Path, registry: ParserRegistry, include_test: bool = True) -> list[str]:
    """Relative POSIX paths of known manifests under ``root``, sorted.

    ``.git``, ``vendor`` and ``node_modules`` are not descended into.
    Test-only manifests are returned only when ``include_test`` is set.
    """
    known = registry.known_filenames(include_test)
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        for filename in filenames:
            if filename in known:
                found.append(Path(dirpath, filename).relative_to(root).as_posix())
    return sorted(found)
