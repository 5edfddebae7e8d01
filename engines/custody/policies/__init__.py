"""
Custody Engine — Access Control and Lifecycle Policies
========================================================
Each policy is a pure callable:
    (Command, ...lookups) → Optional[RejectionReason]
returning None when the command passes.

Two authorization guards decide who may act:
- administrator_only_policy   — the fixed administrator principal
- current_holder_policy       — the batch's current custodian
Every transition applies exactly one of them, then role and lifecycle
policies. Policies never mutate anything.
"""

from __future__ import annotations

from typing import Callable, Optional

from core.commands.base import Command
from core.commands.rejection import ReasonCode, RejectionReason
from engines.custody.batch_store import Batch, batch_not_found
from engines.custody.registry import PrincipalRegistry
from engines.custody.states import CUSTODY_BATCH_WORKFLOW, BatchState, Role

BatchLookup = Callable[[str], Optional[Batch]]


# ══════════════════════════════════════════════════════════════
# AUTHORIZATION GUARDS
# ══════════════════════════════════════════════════════════════

def administrator_only_policy(
    command: Command,
    administrator: str,
) -> Optional[RejectionReason]:
    """Only the administrator fixed at construction may act."""
    if command.actor_id != administrator:
        return RejectionReason(
            code=ReasonCode.UNAUTHORIZED,
            message=f"Caller '{command.actor_id}' is not the administrator.",
            policy_name="administrator_only_policy",
        )
    return None


def current_holder_policy(
    command: Command,
    batch_lookup: BatchLookup,
) -> Optional[RejectionReason]:
    """Only the batch's current holder may act on it."""
    batch_id = command.payload.get("batch_id")
    batch = batch_lookup(batch_id)
    if batch is None:
        return batch_not_found(batch_id, "current_holder_policy")

    if command.actor_id != batch.current_holder:
        return RejectionReason(
            code=ReasonCode.UNAUTHORIZED,
            message=(
                f"Caller '{command.actor_id}' is not the current holder "
                f"of batch '{batch_id}'."
            ),
            policy_name="current_holder_policy",
        )
    return None


# ══════════════════════════════════════════════════════════════
# EXISTENCE
# ══════════════════════════════════════════════════════════════

def batch_must_exist_policy(
    command: Command,
    batch_lookup: BatchLookup,
) -> Optional[RejectionReason]:
    batch_id = command.payload.get("batch_id")
    if batch_lookup(batch_id) is None:
        return batch_not_found(batch_id, "batch_must_exist_policy")
    return None


def batch_id_must_be_unused_policy(
    command: Command,
    batch_lookup: BatchLookup,
) -> Optional[RejectionReason]:
    batch_id = command.payload.get("batch_id")
    if batch_lookup(batch_id) is not None:
        return RejectionReason(
            code=ReasonCode.DUPLICATE_BATCH_ID,
            message=f"Batch '{batch_id}' already exists.",
            policy_name="batch_id_must_be_unused_policy",
        )
    return None


# ══════════════════════════════════════════════════════════════
# ROLES
# ══════════════════════════════════════════════════════════════

def principal_must_not_be_registered_policy(
    command: Command,
    registry: PrincipalRegistry,
    role: Role,
) -> Optional[RejectionReason]:
    principal = command.payload.get("principal")
    if registry.is_registered(principal, role):
        return RejectionReason(
            code=ReasonCode.ALREADY_REGISTERED,
            message=(
                f"Principal '{principal}' is already a registered "
                f"{role.value.lower()}."
            ),
            policy_name="principal_must_not_be_registered_policy",
        )
    return None


def recipient_must_be_registered_policy(
    command: Command,
    registry: PrincipalRegistry,
    role: Role,
) -> Optional[RejectionReason]:
    recipient = command.payload.get("recipient")
    if not registry.is_registered(recipient, role):
        return RejectionReason(
            code=ReasonCode.UNAUTHORIZED,
            message=(
                f"Recipient not registered: '{recipient}' is not a "
                f"registered {role.value.lower()}."
            ),
            policy_name="recipient_must_be_registered_policy",
        )
    return None


def caller_must_be_registered_policy(
    command: Command,
    registry: PrincipalRegistry,
    role: Role,
) -> Optional[RejectionReason]:
    if not registry.is_registered(command.actor_id, role):
        return RejectionReason(
            code=ReasonCode.UNAUTHORIZED,
            message=(
                f"Caller '{command.actor_id}' is not a registered "
                f"{role.value.lower()}."
            ),
            policy_name="caller_must_be_registered_policy",
        )
    return None


# ══════════════════════════════════════════════════════════════
# LIFECYCLE
# ══════════════════════════════════════════════════════════════

def transition_must_be_legal_policy(
    command: Command,
    batch_lookup: BatchLookup,
    to_state: BatchState,
) -> Optional[RejectionReason]:
    """The batch's current state must allow a move to `to_state`."""
    batch_id = command.payload.get("batch_id")
    batch = batch_lookup(batch_id)
    if batch is None:
        return batch_not_found(batch_id, "transition_must_be_legal_policy")

    from_state = batch.state.value
    if not CUSTODY_BATCH_WORKFLOW.is_valid_transition(from_state, to_state.value):
        allowed = sorted(CUSTODY_BATCH_WORKFLOW.allowed_next_states(from_state))
        return RejectionReason(
            code=ReasonCode.INVALID_TRANSITION,
            message=(
                f"Batch '{batch_id}' is {from_state}; cannot move to "
                f"{to_state.value}. Allowed: {allowed}."
            ),
            policy_name="transition_must_be_legal_policy",
        )
    return None
