"""Parsers for Conda environment files and conda-build recipes (meta.yaml)."""

import re
from typing import Any, Optional

import yaml

from ..dependency import Ecosystem
from ..exceptions import ParseError, SchemaError
from ..logging_config import get_logger
from ._grammar import parse_conda_spec
from .base import ManifestParser, ParseResult, decode
from .pip import parse_lines

logger = get_logger(__name__)

ENVIRONMENT = "environment.yml"
ENVIRONMENT_DEV = "environment-dev.yml"
META_YAML = "meta.yaml"

_JINJA_STATEMENT = re.compile(r"\{%.*?%\}")
_JINJA_EXPRESSION = re.compile(r"\{\{.*?\}\}")


def _load_yaml(text: str, filename: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(filename, str(e))


def _add_spec(result: ParseResult, entry: str) -> None:
    spec = parse_conda_spec(entry, Ecosystem.PYTHON)
    if spec is None:
        logger.debug(f"Unrecognized conda spec: {entry!r}")
        return
    result.dependencies.append(spec.dependency)
    if spec.issue is not None:
        result.issues.append(spec.issue)


def _pip_section(entry: dict, filename: str) -> ParseResult:
    if "pip" not in entry:
        raise SchemaError(filename, f"dependency mapping without a pip key: {sorted(entry)}")
    pip_entries = entry["pip"]
    if not isinstance(pip_entries, list):
        raise SchemaError(filename, f"pip dependencies must be a list, got {type(pip_entries).__name__}")
    for item in pip_entries:
        if not isinstance(item, str):
            raise SchemaError(filename, f"pip dependency must be a string, got {item!r}")
    return parse_lines("\n".join(pip_entries), filename)


def convert_dependencies(entries: Any, filename: str = ENVIRONMENT) -> ParseResult:
    """Convert a Conda ``dependencies`` list.

    Entries are either match-spec strings or a mapping holding a ``pip``
    list; anything else raises SchemaError.
    """
    if entries is None:
        return ParseResult()
    if not isinstance(entries, list):
        raise SchemaError(filename, "dependencies must be a list")

    result = ParseResult()
    for entry in entries:
        if isinstance(entry, str):
            _add_spec(result, entry)
        elif isinstance(entry, dict):
            result.extend(_pip_section(entry, filename))
        else:
            raise SchemaError(filename, f"unrecognized dependency entry: {entry!r}")
    return result


def parse_environment(data: bytes, filename: str = ENVIRONMENT) -> ParseResult:
    doc = _load_yaml(decode(data, filename), filename)
    if doc is None:
        return ParseResult()
    if not isinstance(doc, dict):
        raise SchemaError(filename, "document is not a mapping")
    return convert_dependencies(doc.get("dependencies"), filename)


def strip_jinja(text: str) -> str:
    """Drop ``{% ... %}`` statements and blank ``{{ ... }}`` expressions."""
    text = _JINJA_STATEMENT.sub("", text)
    return _JINJA_EXPRESSION.sub("", text)


def _string_list(section: Any, key: str, filename: str) -> list[str]:
    if section is None:
        return []
    if not isinstance(section, dict):
        raise SchemaError(filename, f"{key} must be a mapping")
    values = section.get(key) or []
    if not isinstance(values, list):
        raise SchemaError(filename, f"{key} must be a list")
    out = []
    for value in values:
        if value is None:
            continue
        if not isinstance(value, str):
            raise SchemaError(filename, f"{key} entry must be a string, got {value!r}")
        out.append(value)
    return out


def parse_meta_yaml(data: bytes, include_test: bool = True, filename: str = META_YAML) -> ParseResult:
    doc = _load_yaml(strip_jinja(decode(data, filename)), filename)
    if doc is None:
        return ParseResult()
    if not isinstance(doc, dict):
        raise SchemaError(filename, "document is not a mapping")

    requirements = doc.get("requirements")
    entries: list[str] = []
    for key in ("build", "host", "run"):
        entries.extend(_string_list(requirements, key, filename))
    if include_test:
        entries.extend(_string_list(doc.get("test"), "requires", filename))

    result = ParseResult()
    for entry in entries:
        entry = entry.strip()
        # Jinja blanking can leave a bare "name" or nothing at all
        if entry:
            _add_spec(result, entry)
    return result


class CondaParser(ManifestParser):
    name = "conda"
    filenames = (ENVIRONMENT,)
    test_filenames = (ENVIRONMENT_DEV,)

    def parse(
        self, data: bytes, include_test: bool = True, companion_data: Optional[bytes] = None
    ) -> ParseResult:
        return parse_environment(data)


class MetaYamlParser(ManifestParser):
    name = "meta.yaml"
    filenames = (META_YAML,)

    def parse(
        self, data: bytes, include_test: bool = True, companion_data: Optional[bytes] = None
    ) -> ParseResult:
        return parse_meta_yaml(data, include_test)
