"""
Custody Command Layer — Public API
=====================================
Command → Policies → Rejection or Execution.
"""

from core.commands.base import (
    Command,
    derive_rejection_event_type,
    derive_source_engine,
)
from core.commands.rejection import ReasonCode, RejectionReason

__all__ = [
    "Command",
    "derive_rejection_event_type",
    "derive_source_engine",
    "ReasonCode",
    "RejectionReason",
]
