"""
Field-level change tracking between two document snapshots.

Paths are dotted (``schedule.startDate``). Plain dicts are walked
recursively; everything else (lists, datetimes, scalars) is compared by its
serialized JSON form, so structurally equal values never show up as changes.
A missing key and ``None`` are both "absent" and compare equal; absent vs an
empty string is a change.
"""

import json
from datetime import date, datetime
from typing import Any, Iterable, Optional

# Internal/metadata keys never reported as changes, at any depth
DEFAULT_EXCLUDED_FIELDS = frozenset({"id", "_id", "version", "__v", "createdAt", "updatedAt"})

# Skipped at the top level only. The job notes array is append-only and
# tracked as its own events; sub-document "notes" strings are real fields.
TOP_LEVEL_EXCLUDED_FIELDS = frozenset({"notes"})


def serialize_value(value: Any) -> Any:
    """Convert datetimes to ISO strings, recursively, leaving other values as-is"""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    return value


def _fingerprint(value: Any) -> str:
    return json.dumps(serialize_value(value), sort_keys=True, default=str)


def _is_plain_object(value: Any) -> bool:
    return type(value) is dict


def diff_documents(
    old: Optional[dict],
    new: Optional[dict],
    exclude: Iterable[str] = DEFAULT_EXCLUDED_FIELDS,
    prefix: str = "",
) -> dict[str, dict[str, Any]]:
    """
    Compute ``{path: {"from": old_value, "to": new_value}}`` for every changed path.

    Pure function: neither argument is modified. Returns an empty dict when
    nothing changed.
    """
    exclude = frozenset(exclude)
    old = old if _is_plain_object(old) else {}
    new = new if _is_plain_object(new) else {}

    changes: dict[str, dict[str, Any]] = {}
    for key in dict.fromkeys([*old.keys(), *new.keys()]):
        if key in exclude or (not prefix and key in TOP_LEVEL_EXCLUDED_FIELDS):
            continue

        old_value = old.get(key)
        new_value = new.get(key)
        path = f"{prefix}.{key}" if prefix else key

        if _is_plain_object(new_value):
            nested_old = old_value if _is_plain_object(old_value) else {}
            changes.update(diff_documents(nested_old, new_value, exclude, path))
        elif _fingerprint(old_value) != _fingerprint(new_value):
            changes[path] = {"from": old_value, "to": new_value}

    return changes


def serialize_changes(changes: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Storage form of a change map: no native date objects"""
    return {
        path: {"from": serialize_value(change.get("from")), "to": serialize_value(change.get("to"))}
        for path, change in changes.items()
    }


def display_value(value: Any) -> str:
    if value is None:
        return "empty"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        return json.dumps(serialize_value(value), default=str)
    return str(value)


def describe_changes(changes: dict[str, dict[str, Any]]) -> list[str]:
    """Human-readable ``"<field>: <from> → <to>"`` lines"""
    return [
        f"{path}: {display_value(change.get('from'))} → {display_value(change.get('to'))}"
        for path, change in changes.items()
    ]
