"""
Custody Event Store — Validators Public API
=============================================
"""

from core.event_store.validators.registry import EventTypeRegistry

__all__ = ["EventTypeRegistry"]
