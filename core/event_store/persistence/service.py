"""
Custody Event Store — Persistence Service
===========================================
The single controlled write path from the in-memory EventLog into the
database.

Write flow:
    1. Check the entry extends the stored chain (sequence + previous_hash)
    2. Atomic DB save, re-checking the chain head under a row lock
    3. Return success or a deterministic rejection

This service does NOT:
- Recompute or correct hashes
- Retry on failure
- Interpret payload meaning
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.db import IntegrityError, transaction

from core.event_store.hashing.hasher import GENESIS_HASH
from core.event_store.log import LogEntry
from core.event_store.persistence.errors import PersistenceRejectionCode
from core.event_store.persistence.repository import get_latest_entry, save_entry

logger = logging.getLogger("custody.events")


@dataclass(frozen=True)
class PersistResult:
    accepted: bool
    code: Optional[str] = None
    message: Optional[str] = None


class PersistenceRejected(Exception):
    """Raised by LedgerSink when the database refuses an entry."""

    def __init__(self, result: PersistResult):
        self.result = result
        super().__init__(f"[{result.code}] {result.message}")


def _check_chain_head(entry: LogEntry, *, lock: bool) -> Optional[PersistResult]:
    latest = get_latest_entry(lock=lock)
    expected_sequence = 0 if latest is None else latest.sequence + 1
    expected_previous = GENESIS_HASH if latest is None else latest.entry_hash

    if entry.sequence != expected_sequence:
        return PersistResult(
            accepted=False,
            code=PersistenceRejectionCode.SEQUENCE_GAP,
            message=(
                f"Entry #{entry.sequence} does not follow the stored head; "
                f"expected #{expected_sequence}."
            ),
        )
    if entry.previous_hash != expected_previous:
        return PersistResult(
            accepted=False,
            code=PersistenceRejectionCode.HASH_CHAIN_BROKEN,
            message=(
                f"Entry #{entry.sequence} previous_hash "
                f"'{entry.previous_hash}' does not match stored head "
                f"'{expected_previous}'."
            ),
        )
    return None


def persist_entry(entry: LogEntry) -> PersistResult:
    """
    Persist one EventLog entry.

    Returns PersistResult — accepted=True, or accepted=False with a code.
    Never partially writes.
    """
    rejection = _check_chain_head(entry, lock=False)
    if rejection is not None:
        return rejection

    try:
        with transaction.atomic():
            # Re-check inside the transaction for concurrent writers
            rejection = _check_chain_head(entry, lock=True)
            if rejection is not None:
                return rejection
            save_entry(entry)

    except IntegrityError as exc:
        return PersistResult(
            accepted=False,
            code=PersistenceRejectionCode.DUPLICATE_ENTRY,
            message=f"Entry #{entry.sequence} already persisted: {exc}",
        )

    logger.debug(f"Persisted #{entry.sequence} {entry.event_type}")
    return PersistResult(accepted=True)


class LedgerSink:
    """
    EventLog sink that mirrors every appended entry into the database.

    Usage:
        log = EventLog(registry, sinks=[LedgerSink()])
    """

    def __call__(self, entry: LogEntry) -> None:
        result = persist_entry(entry)
        if not result.accepted:
            raise PersistenceRejected(result)
