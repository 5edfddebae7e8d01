"""
Custody Event Store — Append-Only Event Log
=============================================
The ordered record of every accepted change on the ledger.

RULES (NON-NEGOTIABLE):
- Append only: no entry is amended or removed
- Strict order: sequence numbers are dense, starting at 0
- Only registered event types are accepted
- Hash-chain integrity via previous_hash → entry_hash
- Sinks run after the append; a failing sink never undoes it

Readers get a lazy, finite, forward-only iterator that can be restarted
from any offset. Delivering entries elsewhere is the job of sinks.
"""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Callable, Iterable, Iterator, List, Optional

from core.event_store.errors import InvalidOffset, UnregisteredEventType
from core.event_store.hashing.hasher import GENESIS_HASH, compute_entry_hash
from core.event_store.validators.registry import EventTypeRegistry

logger = logging.getLogger("custody.events")


@dataclass(frozen=True)
class LogEntry:
    """One immutable entry of the event log."""

    sequence: int
    event_type: str
    payload: dict
    actor_id: str
    recorded_at: datetime
    correlation_id: Optional[uuid.UUID]
    previous_hash: str
    entry_hash: str

    def to_dict(self) -> dict:
        return {
            "sequence": self.sequence,
            "event_type": self.event_type,
            "payload": copy.deepcopy(self.payload),
            "actor_id": self.actor_id,
            "recorded_at": self.recorded_at.isoformat(),
            "correlation_id": (
                str(self.correlation_id) if self.correlation_id else None
            ),
            "previous_hash": self.previous_hash,
            "entry_hash": self.entry_hash,
        }


LogSink = Callable[[LogEntry], None]


class EventLog:
    """
    In-memory append-only log.

    Usage:
        log = EventLog(registry)
        log.append(
            event_type="custody.batch.created.v1",
            payload={"batch_id": "B1"},
            actor_id="0xADMIN",
            recorded_at=clock.now_utc(),
        )
        for entry in log.read(offset=0):
            ...
    """

    def __init__(
        self,
        registry: EventTypeRegistry,
        sinks: Iterable[LogSink] = (),
    ):
        self._registry = registry
        self._entries: List[LogEntry] = []
        self._sinks: List[LogSink] = list(sinks)
        self._lock = RLock()

    # ══════════════════════════════════════════════════════════
    # WRITE
    # ══════════════════════════════════════════════════════════

    def append(
        self,
        *,
        event_type: str,
        payload: dict,
        actor_id: str,
        recorded_at: datetime,
        correlation_id: Optional[uuid.UUID] = None,
    ) -> LogEntry:
        if not self._registry.is_registered(event_type):
            raise UnregisteredEventType(event_type)

        with self._lock:
            sequence = len(self._entries)
            previous_hash = self.head_hash
            frozen_payload = copy.deepcopy(payload)
            entry = LogEntry(
                sequence=sequence,
                event_type=event_type,
                payload=frozen_payload,
                actor_id=actor_id,
                recorded_at=recorded_at,
                correlation_id=correlation_id,
                previous_hash=previous_hash,
                entry_hash=compute_entry_hash(
                    sequence, event_type, frozen_payload, previous_hash,
                ),
            )
            self._entries.append(entry)
            logger.debug(f"Appended #{sequence} {event_type}")

            # Sinks run under the lock so they observe entries in order.
            for sink in self._sinks:
                self._notify(sink, entry)

        return entry

    def add_sink(self, sink: LogSink) -> None:
        if not callable(sink):
            raise TypeError(f"Sink must be callable, got {type(sink).__name__}.")
        with self._lock:
            self._sinks.append(sink)

    def _notify(self, sink: LogSink, entry: LogEntry) -> None:
        sink_name = getattr(sink, "__qualname__", str(sink))
        try:
            sink(entry)
        except Exception as exc:
            logger.error(
                f"Log sink {sink_name} failed on #{entry.sequence} "
                f"({entry.event_type}): {exc}",
                exc_info=True,
            )

    # ══════════════════════════════════════════════════════════
    # READ
    # ══════════════════════════════════════════════════════════

    def read(self, offset: int = 0) -> Iterator[LogEntry]:
        """
        Iterate entries from `offset` up to the log length at call time.

        Entries appended after the call are not yielded; call read()
        again from the last seen sequence + 1 to continue.
        """
        with self._lock:
            end = len(self._entries)
        if offset < 0 or offset > end:
            raise InvalidOffset(offset, end)
        return self._iterate(offset, end)

    def _iterate(self, start: int, end: int) -> Iterator[LogEntry]:
        for index in range(start, end):
            yield self._entries[index]

    def entries_of_type(self, event_type: str) -> tuple[LogEntry, ...]:
        return tuple(e for e in self.read() if e.event_type == event_type)

    def accepts(self, event_type: str) -> bool:
        """True if append() would take `event_type`."""
        return self._registry.is_registered(event_type)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def head_hash(self) -> str:
        with self._lock:
            if not self._entries:
                return GENESIS_HASH
            return self._entries[-1].entry_hash

    # ══════════════════════════════════════════════════════════
    # INTEGRITY
    # ══════════════════════════════════════════════════════════

    def verify_chain(self) -> bool:
        """Recompute every hash; False on the first broken link."""
        previous_hash = GENESIS_HASH
        for expected_sequence, entry in enumerate(self.read()):
            if entry.sequence != expected_sequence:
                return False
            if entry.previous_hash != previous_hash:
                return False
            recomputed = compute_entry_hash(
                entry.sequence, entry.event_type, entry.payload,
                entry.previous_hash,
            )
            if recomputed != entry.entry_hash:
                return False
            previous_hash = entry.entry_hash
        return True
