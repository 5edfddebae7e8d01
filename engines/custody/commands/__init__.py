"""
Custody Engine — Request Commands
===================================
Typed custody requests that validate their own fields and convert into
canonical Command objects.

A request that fails validation raises ValueError before any ledger
state is read; authorization and lifecycle checks come later, in
policies.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from core.commands.base import Command
from core.time.temporal import require_aware


# ══════════════════════════════════════════════════════════════
# COMMAND TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

CUSTODY_DISTRIBUTOR_REGISTER_REQUEST = "custody.distributor.register.request"
CUSTODY_WHOLESALER_REGISTER_REQUEST = "custody.wholesaler.register.request"
CUSTODY_BATCH_CREATE_REQUEST = "custody.batch.create.request"
CUSTODY_BATCH_SHIP_TO_DISTRIBUTOR_REQUEST = "custody.batch.ship_to_distributor.request"
CUSTODY_BATCH_SHIP_TO_WHOLESALER_REQUEST = "custody.batch.ship_to_wholesaler.request"
CUSTODY_BATCH_DISTRIBUTOR_UPDATE_REQUEST = "custody.batch.distributor_update.request"
CUSTODY_BATCH_WHOLESALER_UPDATE_REQUEST = "custody.batch.wholesaler_update.request"

CUSTODY_COMMAND_TYPES = frozenset({
    CUSTODY_DISTRIBUTOR_REGISTER_REQUEST,
    CUSTODY_WHOLESALER_REGISTER_REQUEST,
    CUSTODY_BATCH_CREATE_REQUEST,
    CUSTODY_BATCH_SHIP_TO_DISTRIBUTOR_REQUEST,
    CUSTODY_BATCH_SHIP_TO_WHOLESALER_REQUEST,
    CUSTODY_BATCH_DISTRIBUTOR_UPDATE_REQUEST,
    CUSTODY_BATCH_WHOLESALER_UPDATE_REQUEST,
})


def _build_command(
    command_type: str,
    payload: dict,
    *,
    actor_id: str,
    command_id: uuid.UUID,
    correlation_id: uuid.UUID,
    issued_at: datetime,
) -> Command:
    return Command(
        command_id=command_id,
        command_type=command_type,
        actor_id=actor_id,
        payload=payload,
        issued_at=issued_at,
        correlation_id=correlation_id,
        source_engine="custody",
    )


def _require_text(value, field_name: str) -> None:
    if not value or not isinstance(value, str):
        raise ValueError(f"{field_name} must be non-empty.")


# ══════════════════════════════════════════════════════════════
# REGISTRATION REQUESTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DistributorRegisterRequest:
    """Grant the distributor role to a principal."""
    principal: str
    name: str
    business_registration_number: str
    phone_number: str

    def __post_init__(self):
        _require_text(self.principal, "principal")
        _require_text(self.name, "name")
        _require_text(
            self.business_registration_number, "business_registration_number",
        )
        _require_text(self.phone_number, "phone_number")

    def to_command(self, *, actor_id, command_id, correlation_id, issued_at):
        return _build_command(
            CUSTODY_DISTRIBUTOR_REGISTER_REQUEST,
            {
                "principal": self.principal,
                "name": self.name,
                "business_registration_number": self.business_registration_number,
                "phone_number": self.phone_number,
            },
            actor_id=actor_id, command_id=command_id,
            correlation_id=correlation_id, issued_at=issued_at,
        )


@dataclass(frozen=True)
class WholesalerRegisterRequest:
    """Grant the wholesaler role to a principal."""
    principal: str
    name: str
    business_registration_number: str
    phone_number: str

    def __post_init__(self):
        _require_text(self.principal, "principal")
        _require_text(self.name, "name")
        _require_text(
            self.business_registration_number, "business_registration_number",
        )
        _require_text(self.phone_number, "phone_number")

    def to_command(self, *, actor_id, command_id, correlation_id, issued_at):
        return _build_command(
            CUSTODY_WHOLESALER_REGISTER_REQUEST,
            {
                "principal": self.principal,
                "name": self.name,
                "business_registration_number": self.business_registration_number,
                "phone_number": self.phone_number,
            },
            actor_id=actor_id, command_id=command_id,
            correlation_id=correlation_id, issued_at=issued_at,
        )


# ══════════════════════════════════════════════════════════════
# BATCH REQUESTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BatchCreateRequest:
    """Record a newly manufactured batch."""
    batch_id: str
    item_name: str
    manufactured_at: datetime
    expires_at: datetime
    production_details: str = ""

    def __post_init__(self):
        _require_text(self.batch_id, "batch_id")
        _require_text(self.item_name, "item_name")
        require_aware(self.manufactured_at, "manufactured_at")
        require_aware(self.expires_at, "expires_at")
        if self.expires_at < self.manufactured_at:
            raise ValueError("expires_at must not precede manufactured_at.")
        if not isinstance(self.production_details, str):
            raise ValueError("production_details must be a string.")

    def to_command(self, *, actor_id, command_id, correlation_id, issued_at):
        return _build_command(
            CUSTODY_BATCH_CREATE_REQUEST,
            {
                "batch_id": self.batch_id,
                "item_name": self.item_name,
                "manufactured_at": self.manufactured_at,
                "expires_at": self.expires_at,
                "production_details": self.production_details,
            },
            actor_id=actor_id, command_id=command_id,
            correlation_id=correlation_id, issued_at=issued_at,
        )


@dataclass(frozen=True)
class ShipToDistributorRequest:
    """Hand a manufactured batch to a registered distributor."""
    batch_id: str
    to_distributor: str

    def __post_init__(self):
        _require_text(self.batch_id, "batch_id")
        _require_text(self.to_distributor, "to_distributor")

    def to_command(self, *, actor_id, command_id, correlation_id, issued_at):
        return _build_command(
            CUSTODY_BATCH_SHIP_TO_DISTRIBUTOR_REQUEST,
            {"batch_id": self.batch_id, "recipient": self.to_distributor},
            actor_id=actor_id, command_id=command_id,
            correlation_id=correlation_id, issued_at=issued_at,
        )


@dataclass(frozen=True)
class ShipToWholesalerRequest:
    """Hand a received batch to a registered wholesaler."""
    batch_id: str
    to_wholesaler: str

    def __post_init__(self):
        _require_text(self.batch_id, "batch_id")
        _require_text(self.to_wholesaler, "to_wholesaler")

    def to_command(self, *, actor_id, command_id, correlation_id, issued_at):
        return _build_command(
            CUSTODY_BATCH_SHIP_TO_WHOLESALER_REQUEST,
            {"batch_id": self.batch_id, "recipient": self.to_wholesaler},
            actor_id=actor_id, command_id=command_id,
            correlation_id=correlation_id, issued_at=issued_at,
        )


@dataclass(frozen=True)
class DistributorStateUpdateRequest:
    """Distributor confirms receipt of a shipped batch."""
    batch_id: str
    state_details: str

    def __post_init__(self):
        _require_text(self.batch_id, "batch_id")
        if not isinstance(self.state_details, str):
            raise ValueError("state_details must be a string.")

    def to_command(self, *, actor_id, command_id, correlation_id, issued_at):
        return _build_command(
            CUSTODY_BATCH_DISTRIBUTOR_UPDATE_REQUEST,
            {"batch_id": self.batch_id, "state_details": self.state_details},
            actor_id=actor_id, command_id=command_id,
            correlation_id=correlation_id, issued_at=issued_at,
        )


@dataclass(frozen=True)
class WholesalerStateUpdateRequest:
    """Wholesaler confirms receipt of a distributed batch."""
    batch_id: str
    state_details: str

    def __post_init__(self):
        _require_text(self.batch_id, "batch_id")
        if not isinstance(self.state_details, str):
            raise ValueError("state_details must be a string.")

    def to_command(self, *, actor_id, command_id, correlation_id, issued_at):
        return _build_command(
            CUSTODY_BATCH_WHOLESALER_UPDATE_REQUEST,
            {"batch_id": self.batch_id, "state_details": self.state_details},
            actor_id=actor_id, command_id=command_id,
            correlation_id=correlation_id, issued_at=issued_at,
        )
