"""Difference engine."""

from .engine import DifferenceEngine, diff_hashes
from .models import DependencyDiff

__all__ = ["DependencyDiff", "DifferenceEngine", "diff_hashes"]
