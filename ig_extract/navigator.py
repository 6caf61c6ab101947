from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence, Union

JsonValue = Union[None, bool, int, float, str, List["JsonValue"], Dict[str, "JsonValue"]]
PathStep = Union[str, int]

DEFAULT_MAX_DEPTH = 6


def _is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    return isinstance(value, (str, list, Mapping)) and not value


def get_value_at_path(value: Any, path: Sequence[PathStep]) -> Any | None:
    """
    Walk `value` one step at a time: str steps index objects, int steps index arrays.

    Any mismatch, missing key or out-of-range index yields None.
    """
    current = value
    for step in path:
        if current is None:
            return None
        if isinstance(step, int) and not isinstance(step, bool):
            if not isinstance(current, list) or not (0 <= step < len(current)):
                return None
            current = current[step]
            continue
        if not isinstance(current, Mapping):
            return None
        current = current.get(step)
    return current


def find_value_by_key(
    value: Any,
    keys: Sequence[str],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Any | None:
    """
    Depth-first search for the first object holding any of `keys`.

    The root sits at depth 0; nodes deeper than max_depth are never inspected.
    Within one object, `keys` are tried in order and empty values (null, false,
    "", [], {}) are skipped so the search continues past them.
    """
    stack: list[tuple[Any, int]] = [(value, 0)]
    while stack:
        node, depth = stack.pop()
        if node is None or depth > max_depth:
            continue

        if isinstance(node, list):
            children = node
        elif isinstance(node, Mapping):
            for key in keys:
                found = node.get(key)
                if not _is_empty(found):
                    return found
            children = list(node.values())
        else:
            continue

        # Reversed so the first child is popped first.
        for child in reversed(children):
            stack.append((child, depth + 1))

    return None


def collect_json_objects(value: Any) -> list[Mapping[str, Any]]:
    """Every object in a JSON tree, in document (pre-order) order."""
    out: list[Mapping[str, Any]] = []
    stack: list[Any] = [value]
    while stack:
        node = stack.pop()
        if isinstance(node, list):
            stack.extend(reversed(node))
        elif isinstance(node, Mapping):
            out.append(node)
            stack.extend(reversed(list(node.values())))
    return out


def pick_string_field(record: Mapping[str, Any], keys: Sequence[str]) -> str | None:
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None
