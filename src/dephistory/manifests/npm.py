"""Parsers for package.json (npm) and glide.yaml (Go)."""

import json
from typing import Any, Optional

import yaml

from ..dependency import Dependency, Ecosystem, WeakVersion
from ..exceptions import ParseError, SchemaError
from .base import ManifestParser, ParseResult, decode

PACKAGE_JSON = "package.json"
GLIDE_YAML = "glide.yaml"

_RANGE_PREFIXES = ("^", "~", ">=", "<=", ">", "<")


def npm_issue(name: str, version: str) -> Optional[WeakVersion]:
    """WeakVersion for range, wildcard or ``x`` versions; None when exact."""
    spec = version.strip()
    if not spec or spec in ("*", "latest"):
        return WeakVersion.create(name, spec, "")
    for prefix in _RANGE_PREFIXES:
        if spec.startswith(prefix):
            return WeakVersion.create(name, spec[len(prefix):].strip(), prefix)
    if "*" in spec or " - " in spec or "||" in spec:
        return WeakVersion.create(name, spec, "")
    if any(part in ("x", "X") for part in spec.split(".")):
        return WeakVersion.create(name, spec, "")
    return None


def _npm_section(doc: dict, key: str, result: ParseResult) -> None:
    section = doc.get(key)
    if section is None:
        return
    if not isinstance(section, dict):
        raise SchemaError(PACKAGE_JSON, f"{key} must be an object")
    for name, version in section.items():
        if not isinstance(version, str):
            raise SchemaError(PACKAGE_JSON, f"version of {name} must be a string")
        result.dependencies.append(Dependency(name, version, Ecosystem.JAVASCRIPT))
        issue = npm_issue(name, version)
        if issue is not None:
            result.issues.append(issue)


def parse_package_json(data: bytes, include_test: bool = True) -> ParseResult:
    try:
        doc = json.loads(decode(data, PACKAGE_JSON))
    except json.JSONDecodeError as e:
        raise ParseError(PACKAGE_JSON, str(e))
    if not isinstance(doc, dict):
        raise SchemaError(PACKAGE_JSON, "document is not an object")

    result = ParseResult()
    _npm_section(doc, "dependencies", result)
    if include_test:
        _npm_section(doc, "devDependencies", result)
    return result


def _glide_section(entries: Any, key: str, result: ParseResult) -> None:
    if entries is None:
        return
    if not isinstance(entries, list):
        raise SchemaError(GLIDE_YAML, f"{key} must be a list")
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("package"):
            raise SchemaError(GLIDE_YAML, f"{key} entry without a package: {entry!r}")
        version = entry.get("version")
        result.dependencies.append(
            Dependency(str(entry["package"]), "" if version is None else str(version), Ecosystem.GO)
        )


def parse_glide(data: bytes, include_test: bool = True) -> ParseResult:
    try:
        doc = yaml.safe_load(decode(data, GLIDE_YAML))
    except yaml.YAMLError as e:
        raise ParseError(GLIDE_YAML, str(e))
    if doc is None:
        return ParseResult()
    if not isinstance(doc, dict):
        raise SchemaError(GLIDE_YAML, "document is not a mapping")

    result = ParseResult()
    _glide_section(doc.get("import"), "import", result)
    if include_test:
        _glide_section(doc.get("testImport"), "testImport", result)
    return result


class NpmParser(ManifestParser):
    name = "npm"
    filenames = (PACKAGE_JSON,)

    def parse(
        self, data: bytes, include_test: bool = True, companion_data: Optional[bytes] = None
    ) -> ParseResult:
        return parse_package_json(data, include_test)


class GlideParser(ManifestParser):
    name = "glide"
    filenames = (GLIDE_YAML,)

    def parse(
        self, data: bytes, include_test: bool = True, companion_data: Optional[bytes] = None
    ) -> ParseResult:
        return parse_glide(data, include_test)
