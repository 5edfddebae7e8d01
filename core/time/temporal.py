"""
Custody Core Time — Temporal Helpers
======================================
Pure functions for deadline logic.
All functions take explicit datetime arguments — no hidden clock access.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional


def require_aware(value: datetime, field_name: str) -> None:
    """Reject naive datetimes; the ledger compares instants only."""
    if not isinstance(value, datetime):
        raise ValueError(f"{field_name} must be a datetime.")
    if value.tzinfo is None:
        raise ValueError(f"{field_name} must be timezone-aware.")


def is_past_deadline(deadline: datetime, now: datetime) -> bool:
    """
    True once `now` is strictly after `deadline`.

    The deadline instant itself is still within shelf life.
    """
    return now > deadline


def seconds_until_deadline(deadline: datetime, now: datetime) -> Optional[float]:
    """Seconds remaining before the deadline, or None once it has passed."""
    remaining = (deadline - now).total_seconds()
    return remaining if remaining >= 0 else None
