"""
Custody Event Store — Persisted Ledger Entry
==============================================
Durable copy of one EventLog entry, written by the hosting layer.

RULES (NON-NEGOTIABLE):
- No deletes, no overwrites, no updates after persistence
- sequence is unique and dense (mirrors EventLog order)
- Hash-chain integrity via previous_hash → entry_hash

This file contains NO business logic.
"""

from django.db import models


class LedgerEntry(models.Model):
    """
    Persisted custody log entry.

    Field groups:
        Ordering & Classification
        Actor & Causality
        Payload
        Temporal
        Integrity (Hash-Chain)
    """

    # ── Ordering & Classification ─────────────────────────────
    sequence = models.PositiveBigIntegerField(
        unique=True,
        help_text="0-based position in the custody event log.",
    )

    event_type = models.CharField(
        max_length=255,
        help_text="Namespaced event type (e.g. custody.batch.shipped.v1).",
    )

    # ── Actor & Causality ─────────────────────────────────────
    actor_id = models.CharField(
        max_length=255,
        help_text="Principal whose accepted command produced this entry.",
    )

    correlation_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="Command correlation id; entries of one call share it.",
    )

    # ── Payload ───────────────────────────────────────────────
    payload = models.JSONField()

    # ── Temporal ──────────────────────────────────────────────
    recorded_at = models.DateTimeField(
        help_text="Ledger clock time when the entry was appended.",
    )

    persisted_at = models.DateTimeField(auto_now_add=True)

    # ── Integrity (Hash-Chain) ────────────────────────────────
    previous_hash = models.CharField(max_length=64)
    entry_hash = models.CharField(max_length=64, unique=True)

    class Meta:
        db_table = "custody_ledger_entry"
        ordering = ["sequence"]
        indexes = [
            models.Index(fields=["event_type"], name="idx_ledger_event_type"),
            models.Index(fields=["correlation_id"], name="idx_ledger_correlation"),
        ]

    def save(self, *args, **kwargs):
        """INSERT only. Persisted entries are never updated."""
        if not self._state.adding:
            raise PermissionError(
                "Ledger entries are immutable. "
                "Cannot update a persisted entry."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionError("Ledger entries are never deleted.")

    def __str__(self):
        return f"#{self.sequence} [{self.event_type}]"
