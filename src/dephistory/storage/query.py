"""Query builders and an evaluator for the document store.

Queries are plain dicts in the shape of a search-engine query DSL so that a
remote backend can take them unchanged::

    bool_query(must=[term("name", "flask"), wildcard("version", "1.*")])

Field names may be dotted paths. A list value matches when any of its
elements matches.
"""

from fnmatch import fnmatchcase
from typing import Any, Iterable, Optional

_MISSING = object()


def term(field: str, value: Any) -> dict:
    return {"term": {field: value}}


def terms(field: str, values: Iterable[Any]) -> dict:
    return {"terms": {field: list(values)}}


def wildcard(field: str, pattern: str) -> dict:
    return {"wildcard": {field: pattern}}


def match_all() -> dict:
    return {"match_all": {}}


def nested(path: str, query: dict) -> dict:
    return {"nested": {"path": path, "query": query}}


def bool_query(
    must: Optional[list] = None,
    should: Optional[list] = None,
    must_not: Optional[list] = None,
    filter: Optional[list] = None,
) -> dict:
    clauses: dict[str, list] = {}
    if must:
        clauses["must"] = list(must)
    if should:
        clauses["should"] = list(should)
    if must_not:
        clauses["must_not"] = list(must_not)
    if filter:
        clauses["filter"] = list(filter)
    return {"bool": clauses}


def _values(source: Any, path: str) -> list:
    """All values reachable at dotted ``path``, flattening lists on the way."""
    current = [source]
    for part in path.split("."):
        found = []
        for item in current:
            if isinstance(item, dict):
                value = item.get(part, _MISSING)
                if value is _MISSING:
                    continue
                if isinstance(value, list):
                    found.extend(value)
                else:
                    found.append(value)
        current = found
    return current


def _single(clause: dict) -> tuple[str, Any]:
    if len(clause) != 1:
        raise ValueError(f"expected exactly one field, got {sorted(clause)}")
    return next(iter(clause.items()))


def matches(source: dict, query: Optional[dict]) -> bool:
    """Evaluate ``query`` against one document source."""
    if not query:
        return True
    if len(query) != 1:
        raise ValueError(f"query must have exactly one operator, got {sorted(query)}")
    op, clause = next(iter(query.items()))

    if op == "match_all":
        return True
    if op == "term":
        field, expected = _single(clause)
        return any(v == expected for v in _values(source, field))
    if op == "terms":
        field, expected = _single(clause)
        wanted = set(expected)
        return any(v in wanted for v in _values(source, field) if not isinstance(v, dict))
    if op == "wildcard":
        field, pattern = _single(clause)
        return any(isinstance(v, str) and fnmatchcase(v, pattern) for v in _values(source, field))
    if op == "nested":
        items = _values(source, clause["path"])
        return any(isinstance(i, dict) and matches(i, clause["query"]) for i in items)
    if op == "bool":
        if not all(matches(source, q) for q in clause.get("must", [])):
            return False
        if not all(matches(source, q) for q in clause.get("filter", [])):
            return False
        if any(matches(source, q) for q in clause.get("must_not", [])):
            return False
        should = clause.get("should", [])
        if should and not any(matches(source, q) for q in should):
            return False
        return True
    raise ValueError(f"unsupported query operator: {op}")


def sort_documents(hits: list, sort: Optional[list]) -> list:
    """Sort hits by ``[(field, "asc"|"desc"), ...]``, last key applied first."""
    if not sort:
        return hits
    for field, order in reversed(sort):
        hits = sorted(
            hits,
            key=lambda h: (_values(h.source, field) or [""])[0],
            reverse=order == "desc",
        )
    return hits
