"""
Custody Engine — Custody History Projection
=============================================
Rebuilds the per-batch custody trail from the event log.

The projection is derived state only: it can be dropped and replayed
from offset 0 at any time and yields the same trail.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from core.event_store.log import LogEntry
from engines.custody.events import (
    CUSTODY_BATCH_CREATED_V1,
    CUSTODY_BATCH_SHIPPED_V1,
    CUSTODY_BATCH_STATE_UPDATED_V1,
)


@dataclass(frozen=True)
class CustodyStep:
    sequence: int
    state: str
    holder: str
    state_details: str
    at: str

    def to_dict(self) -> dict:
        return {
            "sequence": self.sequence,
            "state": self.state,
            "holder": self.holder,
            "state_details": self.state_details,
            "at": self.at,
        }


class CustodyHistoryProjection:
    """In-memory projection: batch_id → ordered custody steps."""

    def __init__(self):
        self._history: Dict[str, List[CustodyStep]] = {}
        self._next_sequence = 0

    def apply(self, entry: LogEntry) -> None:
        if entry.sequence < self._next_sequence:
            return  # already applied
        self._next_sequence = entry.sequence + 1

        payload = entry.payload
        if entry.event_type == CUSTODY_BATCH_CREATED_V1:
            self._history[payload["batch_id"]] = [CustodyStep(
                sequence=entry.sequence,
                state=payload["state"],
                holder=payload["current_holder"],
                state_details=payload["state_details"],
                at=payload["created_at"],
            )]

        elif entry.event_type == CUSTODY_BATCH_SHIPPED_V1:
            steps = self._history.setdefault(payload["batch_id"], [])
            previous_details = steps[-1].state_details if steps else ""
            steps.append(CustodyStep(
                sequence=entry.sequence,
                state=payload["state"],
                holder=payload["to_holder"],
                state_details=previous_details,
                at=payload["shipped_at"],
            ))

        elif entry.event_type == CUSTODY_BATCH_STATE_UPDATED_V1:
            self._history.setdefault(payload["batch_id"], []).append(CustodyStep(
                sequence=entry.sequence,
                state=payload["state"],
                holder=payload["holder"],
                state_details=payload["state_details"],
                at=payload["updated_at"],
            ))

    def apply_all(self, entries: Iterable[LogEntry]) -> None:
        for entry in entries:
            self.apply(entry)

    def history(self, batch_id: str) -> Tuple[CustodyStep, ...]:
        return tuple(self._history.get(batch_id, ()))

    @property
    def next_sequence(self) -> int:
        return self._next_sequence
