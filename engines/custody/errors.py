"""
Custody Engine — Typed Rejections
===================================
Every denied operation surfaces to the caller as one of these.
Each carries the RejectionReason produced by the policy that denied it.

Hierarchy:
    CustodyRejected
    ├── Unauthorized
    ├── NotFound
    ├── DuplicateBatchID
    ├── AlreadyRegistered
    ├── InvalidTransition
    └── BatchExpired
"""

from __future__ import annotations

from core.commands.rejection import ReasonCode, RejectionReason


class CustodyRejected(Exception):
    """Base class for custody rejections."""

    code: str = ""

    def __init__(self, reason: RejectionReason):
        self.reason = reason
        super().__init__(f"[{reason.code}] {reason.message}")


class Unauthorized(CustodyRejected):
    code = ReasonCode.UNAUTHORIZED


class NotFound(CustodyRejected):
    code = ReasonCode.NOT_FOUND


class DuplicateBatchID(CustodyRejected):
    code = ReasonCode.DUPLICATE_BATCH_ID


class AlreadyRegistered(CustodyRejected):
    code = ReasonCode.ALREADY_REGISTERED


class InvalidTransition(CustodyRejected):
    code = ReasonCode.INVALID_TRANSITION


class BatchExpired(CustodyRejected):
    code = ReasonCode.BATCH_EXPIRED


_ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        Unauthorized,
        NotFound,
        DuplicateBatchID,
        AlreadyRegistered,
        InvalidTransition,
        BatchExpired,
    )
}


def rejection_error(reason: RejectionReason) -> CustodyRejected:
    """Build the typed error matching a rejection code."""
    error_cls = _ERRORS_BY_CODE.get(reason.code)
    if error_cls is None:
        raise ValueError(f"No custody error for rejection code '{reason.code}'.")
    return error_cls(reason)
