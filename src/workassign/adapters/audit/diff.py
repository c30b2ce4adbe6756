"""Field-level before/after diff for audit entries."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from workassign.adapters.audit.types import FieldChange
from workassign.adapters.store.scoped import to_stored

Snapshot = BaseModel | Mapping[str, Any] | None

# Bookkeeping fields that change on every write and say nothing about the edit.
IGNORED_FIELDS = frozenset({"id", "updatedAt"})


def snapshot_fields(snapshot: Snapshot) -> dict[str, Any]:
    """Flatten a snapshot into stored field names and values.

    Models are dumped by alias with None fields dropped, so a field that is
    None on one side and absent on the other compares as unchanged.
    """
    if snapshot is None:
        return {}
    fields = to_stored(snapshot if isinstance(snapshot, BaseModel) else dict(snapshot))
    return {k: v for k, v in fields.items() if v is not None and k not in IGNORED_FIELDS}


def compute_changes(before: Snapshot, after: Snapshot) -> dict[str, FieldChange]:
    """Diff two snapshots.

    Every field present in either snapshot whose value differs is reported
    as ``{before, after}``; a missing side is reported as None. Values are
    compared by equality, so lists compare element-wise in order. For a
    creation (no ``before``) every field of ``after`` is reported.

    Args:
        before: State before the mutation, or None for a creation.
        after: State after the mutation, or None for a deletion.

    Returns:
        Changed fields keyed by stored field name, in a stable order.
    """
    old = snapshot_fields(before)
    new = snapshot_fields(after)

    changes: dict[str, FieldChange] = {}
    for name in sorted(old.keys() | new.keys()):
        previous = old.get(name)
        current = new.get(name)
        if previous != current:
            changes[name] = FieldChange(before=previous, after=current)
    return changes
