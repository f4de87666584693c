"""Manifest exceptions: malformed documents and unrecognized content."""

from typing import Optional

from .base import DepHistoryError


class ManifestError(DepHistoryError):
    """Base class for manifest-related errors.

    Both subclasses are fatal to the ingestion task that hit them, never to
    the pipeline.
    """

    def __init__(self, message: str, filename: Optional[str], reason: str):
        details = {"reason": reason}
        if filename:
            details["file"] = filename
        super().__init__(message, details=details)
        self.filename = filename
        self.reason = reason

    def with_filename(self, filename: str) -> "ManifestError":
        """Return a copy of this error tagged with ``filename``."""
        return type(self)(filename, self.reason)


class ParseError(ManifestError):
    """Raised when a manifest document cannot be parsed at all."""

    def __init__(self, filename: Optional[str], reason: str):
        super().__init__(f"Malformed manifest: {filename or '<bytes>'}", filename, reason)


class SchemaError(ManifestError):
    """Raised when a manifest parses but its structure is not recognized."""

    def __init__(self, filename: Optional[str], reason: str):
        super().__init__(f"Unrecognized manifest content: {filename or '<bytes>'}", filename, reason)
