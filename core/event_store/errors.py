"""
Custody Event Store — Errors
==============================
Infrastructure errors for the event log. These are NOT business
rejections; business rejections are raised by engines.
"""


class EventStoreError(Exception):
    """Base error for Event Store operations."""
    pass


class InvalidEventTypeFormat(EventStoreError):
    """Event type does not follow engine.domain.action format."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(
            f"Event type '{event_type}' does not follow "
            f"engine.domain.action format."
        )


class UnregisteredEventType(EventStoreError):
    """Append attempted with an event type nobody registered."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(
            f"Event type '{event_type}' is not registered. "
            f"Engines must register their types at bootstrap."
        )


class InvalidOffset(EventStoreError):
    """Read requested from an offset outside the log."""

    def __init__(self, offset: int, length: int):
        self.offset = offset
        self.length = length
        super().__init__(
            f"Offset {offset} is outside the log (length {length})."
        )
