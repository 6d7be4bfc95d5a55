from typing import Any, Mapping

from evdash.constants import RowIdType

_MISSING = object()


def get_path_value(item: Any, path: str, default: Any = None) -> Any:
    """Read a value from a dotted path.

    Each segment is looked up as a key if the current value is a mapping and
    as an attribute otherwise, so `"user.email"` works for dictionaries,
    attrs classes and plain objects alike.
    """
    current = item
    for part in path.split("."):
        if current is None:
            return default
        if isinstance(current, Mapping):
            current = current.get(part, _MISSING)
        else:
            current = getattr(current, part, _MISSING)
        if current is _MISSING:
            return default
    return current


def get_row_id(row: Any, path: str) -> RowIdType:
    """Return the identity of a row.

    Raises:
        ValueError: the row has no value at the given path.
    """
    result = get_path_value(row, path)
    if result is None:
        raise ValueError(f"Row {row!r} has no identity at `{path}`")
    if isinstance(result, list):
        return tuple(result)
    return result


def get_flag(entity: Any, name: str) -> bool:
    """Read an authorization flag; missing flags are False."""
    if entity is None:
        return False
    return bool(get_path_value(entity, name, False))


def is_selectable(row: Any) -> bool:
    """Rows are selectable unless they say otherwise."""
    return get_path_value(row, "is_selectable", True) is not False
