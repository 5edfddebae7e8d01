"""
Custody Event Store — Hash Computation
========================================
Computes entry_hash using SHA-256.

Formula:
    entry_hash = SHA256(canonical_json(sequence, event_type, payload)
                        + previous_hash)

Rules:
- Canonical JSON: sorted keys, fixed separators
- No salt, no randomness — same input ALWAYS produces same output
- First entry uses GENESIS_HASH as previous_hash

This module ONLY computes. It does not persist or dispatch.
"""

import hashlib
import json
from typing import Any


GENESIS_HASH = "GENESIS"


def canonical_serialize(value: Any) -> str:
    """
    Deterministic JSON for hashing.

    str() is the fallback for datetimes and enums, so callers must
    serialize those consistently before appending.
    """
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    )


def compute_entry_hash(
    sequence: int,
    event_type: str,
    payload: Any,
    previous_hash: str,
) -> str:
    """64-character lowercase hex SHA-256 digest of one log entry."""
    body = canonical_serialize({
        "sequence": sequence,
        "event_type": event_type,
        "payload": payload,
    })
    return hashlib.sha256((body + previous_hash).encode("utf-8")).hexdigest()
