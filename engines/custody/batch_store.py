"""
Custody Engine — Batch Store
==============================
Batch records keyed by batch identifier.

A Batch is a frozen snapshot. mutate() swaps the stored snapshot for a
new one in a single assignment, so readers see either the record before
a transition or the record after it, never a mix.

Presence is the key map itself — there is no "empty id" sentinel.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Callable, Dict, Optional, Tuple

from core.commands.rejection import ReasonCode, RejectionReason
from engines.custody.errors import DuplicateBatchID, NotFound
from engines.custody.states import BatchState

logger = logging.getLogger("custody.batches")


@dataclass(frozen=True)
class Batch:
    batch_id: str
    item_name: str
    manufactured_at: datetime
    expires_at: datetime
    production_details: str
    state: BatchState
    state_details: str
    current_holder: str

    def to_dict(self) -> dict:
        return {
            "batch_id": self.batch_id,
            "item_name": self.item_name,
            "manufactured_at": self.manufactured_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "production_details": self.production_details,
            "state": self.state.value,
            "state_details": self.state_details,
            "current_holder": self.current_holder,
        }


def batch_not_found(batch_id: str, policy_name: str) -> RejectionReason:
    return RejectionReason(
        code=ReasonCode.NOT_FOUND,
        message=f"Batch '{batch_id}' does not exist.",
        policy_name=policy_name,
    )


class BatchStore:
    """In-memory batch records. Sole owner of every Batch."""

    def __init__(self):
        self._batches: Dict[str, Batch] = {}
        self._lock = RLock()

    def create(
        self,
        *,
        batch_id: str,
        item_name: str,
        manufactured_at: datetime,
        expires_at: datetime,
        production_details: str,
        creator: str,
    ) -> Batch:
        with self._lock:
            if batch_id in self._batches:
                raise DuplicateBatchID(RejectionReason(
                    code=ReasonCode.DUPLICATE_BATCH_ID,
                    message=f"Batch '{batch_id}' already exists.",
                    policy_name="batch_store",
                ))
            batch = Batch(
                batch_id=batch_id,
                item_name=item_name,
                manufactured_at=manufactured_at,
                expires_at=expires_at,
                production_details=production_details,
                state=BatchState.MANUFACTURED,
                state_details=BatchState.MANUFACTURED.value,
                current_holder=creator,
            )
            self._batches[batch_id] = batch

        logger.info(f"Batch created: {batch_id} (holder {creator})")
        return batch

    def get(self, batch_id: str) -> Batch:
        batch = self.find(batch_id)
        if batch is None:
            raise NotFound(batch_not_found(batch_id, "batch_store"))
        return batch

    def find(self, batch_id: str) -> Optional[Batch]:
        with self._lock:
            return self._batches.get(batch_id)

    def exists(self, batch_id: str) -> bool:
        with self._lock:
            return batch_id in self._batches

    def mutate(self, batch_id: str, fn: Callable[[Batch], Batch]) -> Batch:
        """Replace one existing batch with fn(batch). Identity and expiry are fixed."""
        with self._lock:
            current = self.get(batch_id)
            updated = fn(current)
            if updated.batch_id != current.batch_id:
                raise ValueError("batch_id is immutable.")
            if updated.expires_at != current.expires_at:
                raise ValueError("expires_at is fixed at creation.")
            self._batches[batch_id] = updated
        return updated

    def held_by(self, principal: str) -> Tuple[Batch, ...]:
        with self._lock:
            return tuple(
                b for b in self._batches.values()
                if b.current_holder == principal
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._batches)
