"""Tests for the dephistory exception hierarchy."""

import pytest

from dephistory.exceptions import (
    ConfigurationError,
    DepHistoryError,
    ExternalToolError,
    InvalidConfigError,
    ManifestError,
    NotFoundError,
    ParseError,
    SchemaError,
    StorageError,
    StoreError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error,parent",
        [
            (ParseError("a.txt", "bad"), ManifestError),
            (SchemaError("a.txt", "bad"), ManifestError),
            (NotFoundError("sha", "org/r@abc"), StorageError),
            (StoreError("put", "disk full"), StorageError),
            (InvalidConfigError("workers", 0, "must be at least 1"), ConfigurationError),
            (ExternalToolError("git", "timed out"), DepHistoryError),
        ],
    )
    def test_parents(self, error, parent):
        assert isinstance(error, parent)
        assert isinstance(error, DepHistoryError)


class TestMessages:
    def test_details_in_str(self):
        error = NotFoundError("ref", "refs/heads/master")
        assert str(error) == "ref not found: refs/heads/master (kind=ref, key=refs/heads/master)"

    def test_plain_message(self):
        assert str(DepHistoryError("boom")) == "boom"

    def test_returncode_only_when_known(self):
        assert "returncode" not in ExternalToolError("mvn", "missing").details
        assert ExternalToolError("mvn", "failed", 1).details["returncode"] == "1"


class TestManifestErrors:
    def test_with_filename(self):
        error = ParseError(None, "unexpected token").with_filename("web/package.json")
        assert isinstance(error, ParseError)
        assert error.filename == "web/package.json"
        assert error.reason == "unexpected token"
        assert "web/package.json" in str(error)

    def test_schema_with_filename_keeps_type(self):
        error = SchemaError("package.json", "not an object").with_filename("a/package.json")
        assert type(error) is SchemaError
        assert error.details["file"] == "a/package.json"
