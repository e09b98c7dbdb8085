"""Dot-path extraction and resolution over nested API records.

Paths are plain dot-separated key chains (``amount.value``). Lists are
assumed to be structurally homogeneous: schema inference looks only at the
first element, while value resolution fans out over every element and
joins the results with ``", "``.
"""

from typing import Any

from .models import StructuralError

DEFAULT_MAX_DEPTH = 64
LIST_SEPARATOR = ", "


def extract_paths(sample: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> list[str]:
    """Return the leaf paths of a sample record, depth-first in key order.

    A list sample is reduced to its first element. Empty lists and empty
    objects contribute no paths. Raises StructuralError when nesting goes
    deeper than ``max_depth`` (which also catches self-referencing input).
    """
    record = _first_item(sample, 0, max_depth)
    if not isinstance(record, dict):
        return []

    paths: list[str] = []
    _walk(record, "", 0, max_depth, paths)

    seen: set[str] = set()
    unique = []
    for path in paths:
        if path not in seen:
            seen.add(path)
            unique.append(path)
    return unique


def _walk(node: dict, parent: str, depth: int, max_depth: int, out: list[str]) -> None:
    if depth > max_depth:
        raise StructuralError(
            f"Record nesting exceeds {max_depth} levels at '{parent or '(root)'}'"
        )

    for key, child in node.items():
        path = f"{parent}.{key}" if parent else str(key)

        if isinstance(child, list):
            if not child:
                continue
            child = _first_item(child, depth + 1, max_depth)
            if child is _EMPTY:
                continue

        if isinstance(child, dict):
            _walk(child, path, depth + 1, max_depth, out)
        else:
            out.append(path)


_EMPTY = object()


def _first_item(value: Any, depth: int, max_depth: int) -> Any:
    """Unwrap (possibly nested) lists down to their first element."""
    while isinstance(value, list):
        if depth > max_depth:
            raise StructuralError(f"List nesting exceeds {max_depth} levels")
        if not value:
            return _EMPTY
        value = value[0]
        depth += 1
    return value


def resolve_value(record: Any, path: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """Resolve the value at ``path`` inside ``record``.

    Missing or null links resolve to ``""``. Lists met along the way are
    resolved element-wise and joined with ``", "``. A leaf that is still an
    object is flattened with :func:`flatten_scalar`.

    Depth is counted per path segment, as in :func:`extract_paths`, so any
    path extracted under ``max_depth`` resolves under the same bound.
    """
    if not isinstance(path, str) or not path.strip():
        raise StructuralError(f"Invalid field path: {path!r}")
    segments = path.split(".")
    if len(segments) > max_depth + 1:
        raise StructuralError(f"Path '{path}' is nested deeper than {max_depth} levels")
    return _resolve(record, segments, 0, max_depth)


def _resolve(value: Any, segments: list[str], list_depth: int, max_depth: int) -> Any:
    if value is None:
        return ""

    if isinstance(value, list):
        # Lists nested directly in lists; a key hop resets the count
        if list_depth > max_depth:
            raise StructuralError(f"List nesting exceeds {max_depth} levels")
        return LIST_SEPARATOR.join(
            _text(_resolve(item, segments, list_depth + 1, max_depth)) for item in value
        )

    if not segments:
        if isinstance(value, dict):
            return flatten_scalar(value)
        return value

    if not isinstance(value, dict):
        # Path continues past a scalar
        return ""

    return _resolve(value.get(segments[0]), segments[1:], 0, max_depth)


def flatten_scalar(value: Any) -> str:
    """Join an object's values (not its keys) into one cell string."""
    if isinstance(value, dict):
        members = value.values()
    elif isinstance(value, (list, tuple)):
        members = value
    else:
        return _text(value)
    return LIST_SEPARATOR.join(_text(member) for member in members)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def set_value(target: dict, path: str, value: Any) -> dict:
    """Write ``value`` at ``path`` inside ``target``, creating objects as needed."""
    if not isinstance(path, str) or not path.strip():
        raise StructuralError(f"Invalid field path: {path!r}")

    parts = path.split(".")
    current = target
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    current[parts[-1]] = value
    return target
