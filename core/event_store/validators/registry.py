"""
Custody Event Store — Event Type Registry
===========================================
Controls which event types the log accepts.
Free-text event types are forbidden.

Rules:
- Registry starts EMPTY
- Engines register their types at bootstrap
- The log rejects any unregistered event type
- Format: engine.domain.action (e.g. custody.batch.shipped.v1)
"""

from threading import Lock

from core.event_store.errors import InvalidEventTypeFormat


class EventTypeRegistry:
    """
    In-memory registry of permitted event types.
    Thread-safe for concurrent registration and lookup.

    Usage:
        registry = EventTypeRegistry()
        registry.register("custody.batch.created.v1")
        registry.is_registered("custody.batch.created.v1")  # True
        registry.is_registered("foo.bar.baz")                # False
    """

    def __init__(self):
        self._registered_types: set[str] = set()
        self._lock = Lock()

    def register(self, event_type: str) -> None:
        if not event_type or not isinstance(event_type, str):
            raise InvalidEventTypeFormat(event_type or "")

        if len(event_type.strip().split(".")) < 3:
            raise InvalidEventTypeFormat(event_type)

        with self._lock:
            self._registered_types.add(event_type)

    def is_registered(self, event_type: str) -> bool:
        with self._lock:
            return event_type in self._registered_types

    def get_all_registered(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._registered_types)

    def count(self) -> int:
        with self._lock:
            return len(self._registered_types)
