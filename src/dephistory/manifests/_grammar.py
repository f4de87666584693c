"""Requirement-line grammar shared by the pip, Conda and meta.yaml parsers."""

import re
from typing import Optional

from ..dependency import Dependency, Ecosystem, Issue, WeakVersion

# git(+proto)://host/.../<repo>(.git)?@<ref>
VCS_RE = re.compile(
    r"^git(?:\+(?:https?|ssh|git|file))*://[^/]+/(?:[^@#]+/)?"
    r"(?P<name>[^/@#]+?)(?:\.git)?(?:@(?P<ref>[^#\s]+))?(?:#.*)?$"
)

PIP_OPERATORS = ("===", "==", "~=", "!=", "<=", ">=", "<", ">")
CONDA_OPERATORS = PIP_OPERATORS + ("=",)

PIP_EXACT = frozenset({"==", "==="})
CONDA_EXACT = frozenset({"==", "===", "="})
CONDA_OPERATOR_CHARS = "=<>!~"

_NAME_RE = re.compile(r"^(?P<name>[A-Za-z0-9][A-Za-z0-9._\-]*)(?:\[[^\]]*\])?\s*(?P<rest>.*)$")


class SpecLine:
    """Result of classifying one requirement line."""

    __slots__ = ("dependency", "issue")

    def __init__(self, dependency: Dependency, issue: Optional[Issue] = None):
        self.dependency = dependency
        self.issue = issue


def parse_vcs(line: str, ecosystem: Ecosystem = Ecosystem.PYTHON) -> Optional[SpecLine]:
    match = VCS_RE.match(line)
    if not match:
        return None
    return SpecLine(Dependency(match.group("name"), match.group("ref") or "", ecosystem))


def split_operator(spec: str, operators: tuple[str, ...]) -> tuple[str, str]:
    """Split ``>=1.2`` into (``>=``, ``1.2``); no operator gives ("", spec)."""
    for op in operators:
        if spec.startswith(op):
            return op, spec[len(op):].strip()
    return "", spec.strip()


def parse_generic(
    line: str,
    operators: tuple[str, ...] = PIP_OPERATORS,
    exact: frozenset = PIP_EXACT,
    ecosystem: Ecosystem = Ecosystem.PYTHON,
) -> Optional[SpecLine]:
    """Classify ``name[extras][op]version``.

    Only the first clause of a comma-separated constraint is kept as the
    version; any non-exact operator or a wildcard yields a WeakVersion.
    """
    match = _NAME_RE.match(line.strip())
    if not match:
        return None
    name = match.group("name")
    rest = match.group("rest").strip()
    if not rest:
        return SpecLine(Dependency(name, "", ecosystem))

    operator, version = split_operator(rest, operators)
    if not operator:
        # Unparseable tail; keep the name, drop the version.
        return SpecLine(Dependency(name, "", ecosystem))

    version = version.split(",", 1)[0].strip()
    issue: Optional[Issue] = None
    if operator not in exact or "*" in version:
        issue = WeakVersion.create(name, version, operator)
    return SpecLine(Dependency(name, version, ecosystem), issue)


def parse_conda_spec(line: str, ecosystem: Ecosystem = Ecosystem.PYTHON) -> Optional[SpecLine]:
    """Conda match spec: ``name=1.2=build``, ``name 1.2 build`` or ``name >=1.2``.

    The build string after a second ``=`` or a second space is dropped.
    """
    text = line.strip()
    if "::" in text:
        text = text.split("::", 1)[1]
    if " " in text:
        name, *tokens = text.split()
        spec = ""
        for token in tokens:
            # A bare operator or a trailing comma continues the version
            if spec and not (spec.endswith(",") or not spec.strip(CONDA_OPERATOR_CHARS)):
                break
            spec += token
        if spec and spec[0] not in CONDA_OPERATOR_CHARS:
            spec = "=" + spec
        text = name + spec
    match = _NAME_RE.match(text)
    if match:
        rest = match.group("rest")
        if rest.startswith("=") and not rest.startswith("=="):
            parts = rest[1:].split("=")
            text = match.group("name") + "=" + parts[0]
    return parse_generic(text, CONDA_OPERATORS, CONDA_EXACT, ecosystem)
