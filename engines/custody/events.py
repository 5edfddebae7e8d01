"""
Custody Engine — Event Types and Payload Builders
===================================================
Custody owns: role registration → batch creation → shipment →
receipt confirmation (or forced expiry).

Payloads are plain JSON values (strings, ints, lists, dicts) so that
they hash the same way in memory and after persistence.
"""

from __future__ import annotations

from typing import Optional

from core.commands.base import Command
from engines.custody.batch_store import Batch
from engines.custody.states import BatchState, Role


# ══════════════════════════════════════════════════════════════
# EVENT TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

CUSTODY_ROLE_REGISTERED_V1 = "custody.role.registered.v1"
CUSTODY_BATCH_CREATED_V1 = "custody.batch.created.v1"
CUSTODY_BATCH_SHIPPED_V1 = "custody.batch.shipped.v1"
CUSTODY_NOTIFICATION_SENT_V1 = "custody.notification.sent.v1"
CUSTODY_BATCH_STATE_UPDATED_V1 = "custody.batch.state_updated.v1"

CUSTODY_EVENT_TYPES = (
    CUSTODY_ROLE_REGISTERED_V1,
    CUSTODY_BATCH_CREATED_V1,
    CUSTODY_BATCH_SHIPPED_V1,
    CUSTODY_NOTIFICATION_SENT_V1,
    CUSTODY_BATCH_STATE_UPDATED_V1,
)


def register_custody_event_types(event_type_registry) -> None:
    for event_type in sorted(CUSTODY_EVENT_TYPES):
        event_type_registry.register(event_type)


# ══════════════════════════════════════════════════════════════
# PAYLOAD BUILDERS
# ══════════════════════════════════════════════════════════════

def _base_payload(command: Command) -> dict:
    return {
        "actor_id": command.actor_id,
        "command_id": str(command.command_id),
        "correlation_id": str(command.correlation_id),
    }


def build_role_registered_payload(command: Command, role: Role) -> dict:
    payload = _base_payload(command)
    payload.update({
        "principal": command.payload["principal"],
        "role": role.value,
        "name": command.payload["name"],
        "business_registration_number": (
            command.payload["business_registration_number"]
        ),
        "phone_number": command.payload["phone_number"],
        "registered_at": command.issued_at.isoformat(),
    })
    return payload


def build_batch_created_payload(command: Command, batch: Batch) -> dict:
    payload = _base_payload(command)
    payload.update(batch.to_dict())
    payload["created_at"] = command.issued_at.isoformat()
    return payload


def build_batch_shipped_payload(
    command: Command, batch: Batch, from_holder: str,
) -> dict:
    payload = _base_payload(command)
    payload.update({
        "batch_id": batch.batch_id,
        "from_holder": from_holder,
        "to_holder": batch.current_holder,
        "state": batch.state.value,
        "shipped_at": command.issued_at.isoformat(),
    })
    return payload


def build_notification_payload(command: Command, batch: Batch) -> dict:
    payload = _base_payload(command)
    payload.update({
        "batch_id": batch.batch_id,
        "recipient": batch.current_holder,
        "message": (
            f"Batch {batch.batch_id} ({batch.item_name}) is now "
            f"{batch.state.value.lower()} to you."
        ),
    })
    return payload


def build_state_updated_payload(
    command: Command,
    batch: Batch,
    previous_state: BatchState,
    note: Optional[str] = None,
) -> dict:
    payload = _base_payload(command)
    payload.update({
        "batch_id": batch.batch_id,
        "previous_state": previous_state.value,
        "state": batch.state.value,
        "state_details": batch.state_details,
        "holder": batch.current_holder,
        "updated_at": command.issued_at.isoformat(),
    })
    if note is not None:
        payload["note"] = note
    return payload
