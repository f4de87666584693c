"""Ingestion pipeline."""

from .locks import KeyedLock
from .resolver import TaskResolver
from .tasks import IngestionTask, ResolvedScan
from .workers import COMMITTED, FAILED, SKIPPED, IngestionPipeline

__all__ = [
    "COMMITTED",
    "FAILED",
    "SKIPPED",
    "IngestionPipeline",
    "IngestionTask",
    "KeyedLock",
    "ResolvedScan",
    "TaskResolver",
]
