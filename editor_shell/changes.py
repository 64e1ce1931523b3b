from __future__ import annotations

from typing import Optional

from .models import Record, RecordScope, StoreChange

# Transient UI state; a change touching only these must never trigger a save.
EPHEMERAL_TYPES = frozenset({
    "instance",
    "instance_page_state",
    "instance_presence",
    "pointer",
    "camera",
})


def record_type(record: Record) -> Optional[str]:
    """typeName when present, else the prefix of a `type:id` record id."""
    type_name = record.get("typeName")
    if type_name:
        return str(type_name)
    rid = record.get("id")
    if isinstance(rid, str) and ":" in rid:
        return rid.split(":", 1)[0]
    return None


def classify_record(record: Record) -> RecordScope:
    if record_type(record) in EPHEMERAL_TYPES:
        return RecordScope.EPHEMERAL
    return RecordScope.DOCUMENT


def has_persistent_change(change: StoreChange) -> bool:
    if change.source != "user":
        return False
    return any(
        isinstance(record, dict) and classify_record(record) is RecordScope.DOCUMENT
        for record in change.records()
    )
