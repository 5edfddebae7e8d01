"""
Custody Event Store
=====================
Append-only event log, its hash chain and the Django persistence app.

Only storage-free modules are exported here so that importing the log
does not require configured Django settings.
"""

from core.event_store.errors import (
    EventStoreError,
    InvalidEventTypeFormat,
    InvalidOffset,
    UnregisteredEventType,
)
from core.event_store.log import EventLog, LogEntry, LogSink
from core.event_store.validators.registry import EventTypeRegistry

__all__ = [
    "EventLog",
    "EventStoreError",
    "EventTypeRegistry",
    "InvalidEventTypeFormat",
    "InvalidOffset",
    "LogEntry",
    "LogSink",
    "UnregisteredEventType",
]
