"""
Custody Event Store — Hash-Chain Public API
=============================================
"""

from core.event_store.hashing.hasher import (
    GENESIS_HASH,
    canonical_serialize,
    compute_entry_hash,
)

__all__ = [
    "GENESIS_HASH",
    "canonical_serialize",
    "compute_entry_hash",
]
