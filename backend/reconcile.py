"""Pure helpers for partial updates and option reconciliation.

Nothing here touches the database; the authoring engine feeds stored rows
and incoming payloads in and applies the outcome itself.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence


def present_fields(payload: Any, exclude: Iterable[str] = ()) -> dict[str, Any]:
    """Return only the fields the client actually supplied.

    A field is present when it was set on the pydantic model, even if its
    value is None (e.g. clearing a description). Absent fields keep their
    stored value.
    """
    skip = set(exclude)
    return {
        name: getattr(payload, name)
        for name in payload.model_fields_set
        if name not in skip
    }


def apply_changes(row: Any, changes: Mapping[str, Any]) -> list[str]:
    """Set each present field on `row`; return the names whose value changed."""
    changed = []
    for name, value in changes.items():
        if getattr(row, name) != value:
            setattr(row, name, value)
            changed.append(name)
    return sorted(changed)


@dataclass
class OptionDiff:
    inserts: list = field(default_factory=list)
    updates: dict = field(default_factory=dict)
    deletes: list = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.inserts or self.updates or self.deletes)


def _incoming_id(option: Any) -> Optional[int]:
    if isinstance(option, Mapping):
        return option.get("id")
    return getattr(option, "id", None)


def diff_options(stored: Mapping[int, Any], incoming: Sequence[Any]) -> OptionDiff:
    """Three-way diff of a question's options keyed by id.

    Incoming options without an id are inserted, incoming ids matching a
    stored id are updated in place, and stored ids not matched are deleted.
    An incoming id that is not stored on this question (stale or foreign)
    is dropped. Inserts keep incoming order; for a repeated id the last
    occurrence wins.
    """
    stored_ids = set(stored)
    incoming_ids = set()
    diff = OptionDiff()
    for option in incoming:
        oid = _incoming_id(option)
        if oid is None:
            diff.inserts.append(option)
        elif oid in stored_ids:
            diff.updates[oid] = option
            incoming_ids.add(oid)
    diff.deletes = sorted(stored_ids - incoming_ids)
    return diff
