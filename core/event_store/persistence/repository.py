"""
Custody Event Store - Persistence Repository
============================================
Low-level ORM helpers used by the persistence service.
"""

from __future__ import annotations

from core.event_store.log import LogEntry
from core.event_store.models import LedgerEntry


def save_entry(entry: LogEntry) -> LedgerEntry:
    """
    Persist one log entry via Django ORM.

    The caller (persistence service) owns all chain checks and
    transactional guards.
    """
    return LedgerEntry.objects.create(
        sequence=entry.sequence,
        event_type=entry.event_type,
        actor_id=entry.actor_id,
        correlation_id=entry.correlation_id,
        payload=entry.payload,
        recorded_at=entry.recorded_at,
        previous_hash=entry.previous_hash,
        entry_hash=entry.entry_hash,
    )


def get_latest_entry(*, lock: bool = False) -> LedgerEntry | None:
    query = LedgerEntry.objects.order_by("-sequence")
    if lock:
        query = query.select_for_update()
    return query.first()


def load_entries(offset: int = 0) -> tuple[dict, ...]:
    """Load persisted entries in sequence order, starting at `offset`."""
    fields = (
        "sequence",
        "event_type",
        "actor_id",
        "correlation_id",
        "payload",
        "recorded_at",
        "previous_hash",
        "entry_hash",
    )
    rows = (
        LedgerEntry.objects.filter(sequence__gte=offset)
        .order_by("sequence")
        .values(*fields)
    )
    return tuple(dict(row) for row in rows)
