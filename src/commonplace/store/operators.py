"""Update operators applied to a single document in memory.

The store applies these to a private copy of the stored body and writes the
result back with a compare-and-swap, so a whole update document lands as one
indivisible step.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

SUPPORTED_OPERATORS = frozenset({"$set", "$unset", "$inc", "$addToSet", "$push", "$pull"})

POSITIONAL = "$"


class UpdateSpecError(ValueError):
    """Raised for malformed update documents."""


def positional_arrays(update: Mapping[str, Mapping[str, Any]]) -> set[str]:
    """Return the array paths that precede a positional ``$`` segment."""
    arrays: set[str] = set()
    for fields in update.values():
        for path in fields:
            parts = path.split(".")
            if POSITIONAL in parts:
                arrays.add(".".join(parts[: parts.index(POSITIONAL)]))
    return arrays


def _split(path: str, positional: Mapping[str, int]) -> list[str | int]:
    parts = path.split(".")
    resolved: list[str | int] = []
    for index, part in enumerate(parts):
        if part == POSITIONAL:
            array_path = ".".join(parts[:index])
            if array_path not in positional:
                raise UpdateSpecError(f"No array element matched for positional path {path!r}")
            resolved.append(positional[array_path])
        elif part.isdigit():
            resolved.append(int(part))
        else:
            resolved.append(part)
    if resolved[0] == "id":
        raise UpdateSpecError("The document id is immutable")
    return resolved


def _parent(document: dict[str, Any], parts: list[str | int], create: bool) -> Any:
    node: Any = document
    for part in parts[:-1]:
        if isinstance(part, int):
            if not isinstance(node, list) or part >= len(node):
                raise UpdateSpecError(f"Array index {part} out of range")
            node = node[part]
            continue
        if not isinstance(node, dict):
            raise UpdateSpecError(f"Cannot descend into non-object at {part!r}")
        if part not in node:
            if not create:
                return None
            node[part] = {}
        node = node[part]
    return node


def _get(document: dict[str, Any], parts: list[str | int]) -> Any:
    parent = _parent(document, parts, create=False)
    if parent is None:
        return None
    leaf = parts[-1]
    if isinstance(leaf, int):
        return parent[leaf] if isinstance(parent, list) and leaf < len(parent) else None
    return parent.get(leaf) if isinstance(parent, dict) else None


def _put(document: dict[str, Any], parts: list[str | int], value: Any) -> None:
    parent = _parent(document, parts, create=True)
    leaf = parts[-1]
    if isinstance(leaf, int):
        if not isinstance(parent, list) or leaf >= len(parent):
            raise UpdateSpecError(f"Array index {leaf} out of range")
        parent[leaf] = value
    else:
        parent[leaf] = value


def _each(value: Any) -> list[Any]:
    if isinstance(value, Mapping) and "$each" in value:
        return list(value["$each"])
    return [value]


def _array_at(document: dict[str, Any], parts: list[str | int], path: str) -> list[Any]:
    current = _get(document, parts)
    if current is None:
        current = []
        _put(document, parts, current)
    if not isinstance(current, list):
        raise UpdateSpecError(f"Field {path!r} is not an array")
    return current


def apply_update(
    document: dict[str, Any],
    update: Mapping[str, Mapping[str, Any]],
    positional: Mapping[str, int] | None = None,
) -> None:
    """Apply ``update`` to ``document`` in place.

    Args:
        document: Mutable copy of the stored body.
        update: Mapping of operator to ``{path: operand}``.
        positional: Resolved index for each array path used with ``$``.

    Raises:
        UpdateSpecError: If the update uses an unknown operator, touches the
            id, or addresses a field with the wrong shape.
    """
    positional = positional or {}
    unknown = set(update) - SUPPORTED_OPERATORS
    if unknown:
        raise UpdateSpecError(f"Unsupported update operators: {sorted(unknown)}")

    for op, fields in update.items():
        for path, operand in fields.items():
            parts = _split(path, positional)
            if op == "$set":
                _put(document, parts, operand)
            elif op == "$unset":
                parent = _parent(document, parts, create=False)
                if isinstance(parent, dict):
                    parent.pop(parts[-1], None)
            elif op == "$inc":
                current = _get(document, parts) or 0
                if not isinstance(current, int | float) or not isinstance(operand, int | float):
                    raise UpdateSpecError(f"Cannot increment non-numeric field {path!r}")
                _put(document, parts, current + operand)
            elif op == "$addToSet":
                array = _array_at(document, parts, path)
                for item in _each(operand):
                    if item not in array:
                        array.append(item)
            elif op == "$push":
                _array_at(document, parts, path).extend(_each(operand))
            elif op == "$pull":
                current = _get(document, parts)
                if not isinstance(current, list):
                    continue
                if isinstance(operand, Mapping) and "$in" in operand:
                    removed = list(operand["$in"])
                else:
                    removed = [operand]
                current[:] = [item for item in current if item not in removed]
