"""
Custody Core Time — Explicit Clock Protocol
=============================================
Doctrine: NO datetime.now() inside engine logic.
The engine reads time only through an injected Clock, fixed at
construction alongside the administrator identity.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


# ══════════════════════════════════════════════════════════════
# CLOCK PROTOCOL
# ══════════════════════════════════════════════════════════════

class Clock(Protocol):
    """Injectable, monotonic time source."""

    def now_utc(self) -> datetime:
        """Return current UTC time."""
        ...  # pragma: no cover


# ══════════════════════════════════════════════════════════════
# IMPLEMENTATIONS
# ══════════════════════════════════════════════════════════════

class SystemClock:
    """Production clock — real system time."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Test clock — returns a fixed timestamp until moved.

    Usage:
        clock = FixedClock.at_epoch(500)
        clock.advance(1000)
        assert clock.now_utc() == from_epoch(1500)
    """

    def __init__(self, fixed_dt: datetime) -> None:
        if fixed_dt.tzinfo is None:
            raise ValueError("FixedClock requires timezone-aware datetime.")
        self._fixed_dt = fixed_dt

    @classmethod
    def at_epoch(cls, seconds: float) -> FixedClock:
        return cls(from_epoch(seconds))

    def now_utc(self) -> datetime:
        return self._fixed_dt

    def advance(self, seconds: float) -> None:
        """Move time forward. Time never moves backwards."""
        if seconds < 0:
            raise ValueError("FixedClock cannot move backwards.")
        self._fixed_dt = self._fixed_dt + timedelta(seconds=seconds)

    def set_epoch(self, seconds: float) -> None:
        target = from_epoch(seconds)
        if target < self._fixed_dt:
            raise ValueError("FixedClock cannot move backwards.")
        self._fixed_dt = target


def from_epoch(seconds: float) -> datetime:
    """Unix seconds → aware UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
