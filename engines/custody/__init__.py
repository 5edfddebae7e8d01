"""
Custody Engine
================
Batch custody chain: manufacturer → distributor → wholesaler, with
per-transition authorization and lazy shelf-life expiry.
"""

from engines.custody.batch_store import Batch, BatchStore
from engines.custody.config import CustodyConfig, load_custody_config
from engines.custody.errors import (
    AlreadyRegistered,
    BatchExpired,
    CustodyRejected,
    DuplicateBatchID,
    InvalidTransition,
    NotFound,
    Unauthorized,
)
from engines.custody.registry import PrincipalRecord, PrincipalRegistry
from engines.custody.services import CustodyExecutionResult, CustodyService
from engines.custody.states import BatchState, Role

__all__ = [
    "AlreadyRegistered",
    "Batch",
    "BatchExpired",
    "BatchState",
    "BatchStore",
    "CustodyConfig",
    "CustodyExecutionResult",
    "CustodyRejected",
    "CustodyService",
    "DuplicateBatchID",
    "InvalidTransition",
    "NotFound",
    "PrincipalRecord",
    "PrincipalRegistry",
    "Role",
    "Unauthorized",
    "load_custody_config",
]
