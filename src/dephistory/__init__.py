"""
dephistory - Dependency history auditing across repositories

Normalizes Maven, npm, Glide, pip and Conda manifests into one dependency
model, records a deduplicated per-ref history of every scanned commit and
answers history, search and diff queries over it.
"""

__version__ = "0.4.0"

from .dependency import Dependency, Ecosystem, Issue, Scan, WeakVersion
from .diff import DependencyDiff, DifferenceEngine
from .manifests import ParserRegistry, default_registry, resolve_project
from .pipeline import IngestionPipeline, IngestionTask
from .storage import ScanStore

__all__ = [
    "Dependency",
    "Ecosystem",
    "Issue",
    "Scan",
    "WeakVersion",
    "DependencyDiff",
    "DifferenceEngine",
    "ParserRegistry",
    "default_registry",
    "resolve_project",
    "IngestionPipeline",
    "IngestionTask",
    "ScanStore",
]
