"""Filter evaluation for stored documents.

Filters are plain dictionaries mapping a dotted field path to a condition:

* ``{"privacy": "public"}`` matches on equality; when the field holds a list
  it matches if any element is equal (``{"memberIds": user_id}``).
* Dotted paths descend into lists of objects, so
  ``{"pollOptions.id": option_id}`` matches when any option has that id.
* A condition may be an operator dictionary: ``$ne``, ``$in``, ``$nin``,
  ``$lt``, ``$lte``, ``$gt``, ``$gte`` and ``$exists``.

All conditions of a filter must hold.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

MISSING = object()

_OPERATORS = frozenset({"$ne", "$in", "$nin", "$lt", "$lte", "$gt", "$gte", "$exists"})


def _candidates(node: Any, parts: list[str]) -> Iterator[Any]:
    if not parts:
        yield node
        if isinstance(node, list):
            yield from node
        return
    if isinstance(node, list):
        for item in node:
            yield from _candidates(item, parts)
        return
    if isinstance(node, Mapping):
        if parts[0] in node:
            yield from _candidates(node[parts[0]], parts[1:])
        else:
            yield MISSING
        return
    yield MISSING


def candidates(document: Mapping[str, Any], path: str) -> list[Any]:
    """Return every value reachable from ``document`` along ``path``."""
    return list(_candidates(document, path.split(".")))


def _is_operator_condition(condition: Any) -> bool:
    return (
        isinstance(condition, Mapping)
        and bool(condition)
        and all(key in _OPERATORS for key in condition)
    )


def _compare(values: list[Any], op: str, operand: Any) -> bool:
    for value in values:
        if value is MISSING or value is None or isinstance(value, list):
            continue
        try:
            if op == "$lt" and value < operand:
                return True
            if op == "$lte" and value <= operand:
                return True
            if op == "$gt" and value > operand:
                return True
            if op == "$gte" and value >= operand:
                return True
        except TypeError:
            continue
    return False


def _matches_condition(values: list[Any], condition: Any) -> bool:
    if not _is_operator_condition(condition):
        return condition in values
    for op, operand in condition.items():
        if op == "$ne":
            if operand in values:
                return False
        elif op == "$in":
            if not any(item in values for item in operand):
                return False
        elif op == "$nin":
            if any(item in values for item in operand):
                return False
        elif op == "$exists":
            present = any(value is not MISSING for value in values)
            if present != bool(operand):
                return False
        elif not _compare(values, op, operand):
            return False
    return True


def matches(document: Mapping[str, Any], filter_: Mapping[str, Any] | None) -> bool:
    """Return True when ``document`` satisfies every condition in ``filter_``."""
    if not filter_:
        return True
    for path, condition in filter_.items():
        if not _matches_condition(candidates(document, path), condition):
            return False
    return True


def first_match_index(
    document: Mapping[str, Any],
    array_path: str,
    filter_: Mapping[str, Any] | None,
) -> int | None:
    """Return the index of the first element of ``array_path`` matched by ``filter_``.

    Only the filter conditions rooted under ``array_path`` take part; this is
    what the positional ``$`` segment of an update path resolves to.
    """
    array = candidates(document, array_path)
    elements = array[0] if array and isinstance(array[0], list) else None
    if elements is None:
        return None
    prefix = f"{array_path}."
    element_filter = {
        path[len(prefix):]: condition
        for path, condition in (filter_ or {}).items()
        if path.startswith(prefix)
    }
    if not element_filter:
        return None
    for index, element in enumerate(elements):
        if isinstance(element, Mapping) and matches(element, element_filter):
            return index
    return None
