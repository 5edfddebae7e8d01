"""
Custody Core Time — Public API
================================
Explicit clock protocol and temporal helpers.
Doctrine: NO datetime.now() in engine logic.
"""

from core.time.clock import (
    Clock,
    FixedClock,
    SystemClock,
    from_epoch,
)
from core.time.temporal import (
    is_past_deadline,
    require_aware,
    seconds_until_deadline,
)

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "from_epoch",
    "is_past_deadline",
    "require_aware",
    "seconds_until_deadline",
]
