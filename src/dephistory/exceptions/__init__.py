"""Exception hierarchy for dephistory."""

from .base import DepHistoryError
from .config import ConfigurationError, InvalidConfigError
from .external import ExternalToolError
from .manifest import ManifestError, ParseError, SchemaError
from .storage import NotFoundError, StorageError, StoreError

__all__ = [
    "DepHistoryError",
    "ManifestError",
    "ParseError",
    "SchemaError",
    "StorageError",
    "NotFoundError",
    "StoreError",
    "ExternalToolError",
    "ConfigurationError",
    "InvalidConfigError",
]
