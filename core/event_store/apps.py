"""
Custody Core — Event Store App Configuration
==============================================
Durable, insert-only copy of the custody event log.

This app:
- Persists log entries in sequence order
- Refuses updates and deletes

This app does NOT:
- Interpret event meaning
- Decide transitions (that is the custody engine)
"""

from django.apps import AppConfig


class EventStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.event_store"
    label = "event_store"
    verbose_name = "Custody Event Store"
