"""
Custody Event Store Persistence public API.
"""

from core.event_store.persistence.repository import load_entries
from core.event_store.persistence.service import (
    LedgerSink,
    PersistenceRejected,
    PersistResult,
    persist_entry,
)

__all__ = [
    "LedgerSink",
    "PersistenceRejected",
    "PersistResult",
    "load_entries",
    "persist_entry",
]
