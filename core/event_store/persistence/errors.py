"""
Custody Event Store - Persistence Errors
========================================
Deterministic rejection codes for the persistence stage.
"""


class PersistenceRejectionCode:
    """Rejection codes for persistence-stage failures."""

    SEQUENCE_GAP = "SEQUENCE_GAP"
    HASH_CHAIN_BROKEN = "HASH_CHAIN_BROKEN"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    TRANSACTION_ABORTED = "TRANSACTION_ABORTED"
