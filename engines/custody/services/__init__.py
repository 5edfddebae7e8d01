"""
Custody Engine — Application Service
======================================
The lifecycle engine: every custody operation enters here.

Flow per call (one indivisible unit under the service lock):
    1. Typed request → canonical Command (issued_at from the injected clock)
    2. Policies evaluated in order — first rejection wins
    3. Handler mutates Registry / Batch Store
    4. Handler appends the resulting entries to the Event Log
    5. Result returned, or a typed CustodyRejected raised

The single sanctioned side effect of a rejected call: a holder who
touches an overdue Shipped/Distributed batch persists its expiry (state,
details and StateUpdated entry) before BatchExpired is raised.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from functools import partial
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.commands.base import Command, derive_rejection_event_type
from core.commands.rejection import ReasonCode, RejectionReason
from core.event_store.log import EventLog, LogEntry
from core.event_store.validators.registry import EventTypeRegistry
from core.time.temporal import is_past_deadline, seconds_until_deadline
from engines.custody.batch_store import Batch, BatchStore
from engines.custody.commands import (
    CUSTODY_BATCH_CREATE_REQUEST,
    CUSTODY_BATCH_DISTRIBUTOR_UPDATE_REQUEST,
    CUSTODY_BATCH_SHIP_TO_DISTRIBUTOR_REQUEST,
    CUSTODY_BATCH_SHIP_TO_WHOLESALER_REQUEST,
    CUSTODY_BATCH_WHOLESALER_UPDATE_REQUEST,
    CUSTODY_COMMAND_TYPES,
    CUSTODY_DISTRIBUTOR_REGISTER_REQUEST,
    CUSTODY_WHOLESALER_REGISTER_REQUEST,
    BatchCreateRequest,
    DistributorRegisterRequest,
    DistributorStateUpdateRequest,
    ShipToDistributorRequest,
    ShipToWholesalerRequest,
    WholesalerRegisterRequest,
    WholesalerStateUpdateRequest,
)
from engines.custody.config import CustodyConfig
from engines.custody.errors import BatchExpired, CustodyRejected, rejection_error
from engines.custody.events import (
    CUSTODY_BATCH_CREATED_V1,
    CUSTODY_BATCH_SHIPPED_V1,
    CUSTODY_BATCH_STATE_UPDATED_V1,
    CUSTODY_EVENT_TYPES,
    CUSTODY_NOTIFICATION_SENT_V1,
    CUSTODY_ROLE_REGISTERED_V1,
    build_batch_created_payload,
    build_batch_shipped_payload,
    build_notification_payload,
    build_role_registered_payload,
    build_state_updated_payload,
    register_custody_event_types,
)
from engines.custody.policies import (
    administrator_only_policy,
    batch_id_must_be_unused_policy,
    batch_must_exist_policy,
    caller_must_be_registered_policy,
    current_holder_policy,
    principal_must_not_be_registered_policy,
    recipient_must_be_registered_policy,
    transition_must_be_legal_policy,
)
from engines.custody.projections import CustodyHistoryProjection, CustodyStep
from engines.custody.registry import PrincipalRecord, PrincipalRegistry
from engines.custody.states import EXPIRABLE_STATES, BatchState, Role

logger = logging.getLogger("custody.engine")

Policy = Callable[[Command], Optional[RejectionReason]]


# ══════════════════════════════════════════════════════════════
# EXECUTION RESULT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CustodyExecutionResult:
    command: Command
    value: Any
    entries: Tuple[LogEntry, ...]


# ══════════════════════════════════════════════════════════════
# APPLICATION SERVICE
# ══════════════════════════════════════════════════════════════

class CustodyService:
    """
    Custody lifecycle engine.

    Usage:
        service = CustodyService(
            config=CustodyConfig(administrator="0xADMIN", clock=clock),
        )
        service.create_batch("0xADMIN", "B1", "Vaccine", mfg, expiry)
        service.register_distributor("0xADMIN", "0xD1", "Dist", "BRN-1", "555")
        service.ship_batch_to_distributor("0xADMIN", "B1", "0xD1")
        service.update_state_as_distributor("0xD1", "B1", "ok")

    A supplied event_log must accept every custody event type, otherwise
    construction raises ValueError. Supplied stores are used as given,
    empty or not.
    """

    def __init__(
        self,
        *,
        config: CustodyConfig,
        event_type_registry: EventTypeRegistry | None = None,
        event_log: EventLog | None = None,
        registry: PrincipalRegistry | None = None,
        batch_store: BatchStore | None = None,
    ):
        self._config = config
        if event_type_registry is None:
            event_type_registry = EventTypeRegistry()
        self._event_type_registry = event_type_registry
        register_custody_event_types(self._event_type_registry)

        if event_log is None:
            event_log = EventLog(self._event_type_registry)
        rejected = sorted(t for t in CUSTODY_EVENT_TYPES if not event_log.accepts(t))
        if rejected:
            raise ValueError(
                f"event_log does not accept custody event types: {rejected}"
            )
        self._event_log = event_log

        self._registry = registry if registry is not None else PrincipalRegistry()
        self._batches = batch_store if batch_store is not None else BatchStore()
        self._projection = CustodyHistoryProjection()
        self._lock = RLock()

        self._policies = self._build_policies()
        self._handlers: Dict[str, Callable[[Command], Any]] = {
            CUSTODY_DISTRIBUTOR_REGISTER_REQUEST: partial(
                self._handle_register, role=Role.DISTRIBUTOR,
            ),
            CUSTODY_WHOLESALER_REGISTER_REQUEST: partial(
                self._handle_register, role=Role.WHOLESALER,
            ),
            CUSTODY_BATCH_CREATE_REQUEST: self._handle_create,
            CUSTODY_BATCH_SHIP_TO_DISTRIBUTOR_REQUEST: partial(
                self._handle_ship, to_state=BatchState.SHIPPED,
            ),
            CUSTODY_BATCH_SHIP_TO_WHOLESALER_REQUEST: partial(
                self._handle_ship, to_state=BatchState.DISTRIBUTED,
            ),
            CUSTODY_BATCH_DISTRIBUTOR_UPDATE_REQUEST: partial(
                self._handle_advance, to_state=BatchState.RECEIVED,
            ),
            CUSTODY_BATCH_WHOLESALER_UPDATE_REQUEST: partial(
                self._handle_advance, to_state=BatchState.WHOLESALED,
            ),
        }

    # ══════════════════════════════════════════════════════════
    # POLICY TABLE
    # ══════════════════════════════════════════════════════════

    def _build_policies(self) -> Dict[str, List[Policy]]:
        """
        Ordered policy chain per command type.

        Order: batch existence → caller authorization → role
        registration → source state. The expiry rule runs last,
        inside the handler.
        """
        find = self._batches.find
        admin_only = partial(
            administrator_only_policy, administrator=self._config.administrator,
        )
        holder_only = partial(current_holder_policy, batch_lookup=find)

        return {
            CUSTODY_DISTRIBUTOR_REGISTER_REQUEST: [
                admin_only,
                partial(
                    principal_must_not_be_registered_policy,
                    registry=self._registry, role=Role.DISTRIBUTOR,
                ),
            ],
            CUSTODY_WHOLESALER_REGISTER_REQUEST: [
                admin_only,
                partial(
                    principal_must_not_be_registered_policy,
                    registry=self._registry, role=Role.WHOLESALER,
                ),
            ],
            CUSTODY_BATCH_CREATE_REQUEST: [
                admin_only,
                partial(batch_id_must_be_unused_policy, batch_lookup=find),
            ],
            CUSTODY_BATCH_SHIP_TO_DISTRIBUTOR_REQUEST: [
                partial(batch_must_exist_policy, batch_lookup=find),
                admin_only,
                partial(
                    recipient_must_be_registered_policy,
                    registry=self._registry, role=Role.DISTRIBUTOR,
                ),
                partial(
                    transition_must_be_legal_policy,
                    batch_lookup=find, to_state=BatchState.SHIPPED,
                ),
            ],
            CUSTODY_BATCH_SHIP_TO_WHOLESALER_REQUEST: [
                holder_only,
                partial(
                    recipient_must_be_registered_policy,
                    registry=self._registry, role=Role.WHOLESALER,
                ),
                partial(
                    transition_must_be_legal_policy,
                    batch_lookup=find, to_state=BatchState.DISTRIBUTED,
                ),
            ],
            CUSTODY_BATCH_DISTRIBUTOR_UPDATE_REQUEST: [
                holder_only,
                partial(
                    caller_must_be_registered_policy,
                    registry=self._registry, role=Role.DISTRIBUTOR,
                ),
                partial(
                    transition_must_be_legal_policy,
                    batch_lookup=find, to_state=BatchState.RECEIVED,
                ),
            ],
            CUSTODY_BATCH_WHOLESALER_UPDATE_REQUEST: [
                holder_only,
                partial(
                    caller_must_be_registered_policy,
                    registry=self._registry, role=Role.WHOLESALER,
                ),
                partial(
                    transition_must_be_legal_policy,
                    batch_lookup=find, to_state=BatchState.WHOLESALED,
                ),
            ],
        }

    # ══════════════════════════════════════════════════════════
    # COMMAND EXECUTION
    # ══════════════════════════════════════════════════════════

    def submit(self, caller: str, request) -> CustodyExecutionResult:
        """Convert a typed request into a Command and execute it."""
        with self._lock:
            command = request.to_command(
                actor_id=caller,
                command_id=uuid.uuid4(),
                correlation_id=uuid.uuid4(),
                issued_at=self._config.clock.now_utc(),
            )
            return self.execute(command)

    def execute(self, command: Command) -> CustodyExecutionResult:
        if command.command_type not in CUSTODY_COMMAND_TYPES:
            raise ValueError(
                f"Unsupported custody command type: {command.command_type}"
            )
        handler = self._handlers[command.command_type]

        with self._lock:
            start = len(self._event_log)
            try:
                for policy in self._policies[command.command_type]:
                    rejection = policy(command)
                    if rejection is not None:
                        raise rejection_error(rejection)
                value = handler(command)
            except CustodyRejected as exc:
                logger.info(
                    f"{derive_rejection_event_type(command.command_type)} "
                    f"{command.command_id} by '{command.actor_id}' "
                    f"(policy: {exc.reason.policy_name}): "
                    f"[{exc.reason.code}] {exc.reason.message}"
                )
                raise
            entries = tuple(self._event_log.read(start))

        logger.info(
            f"Accepted {command.command_type} {command.command_id} "
            f"by '{command.actor_id}' ({len(entries)} entries)"
        )
        return CustodyExecutionResult(
            command=command, value=value, entries=entries,
        )

    def _append(self, command: Command, event_type: str, payload: dict) -> LogEntry:
        return self._event_log.append(
            event_type=event_type,
            payload=payload,
            actor_id=command.actor_id,
            recorded_at=command.issued_at,
            correlation_id=command.correlation_id,
        )

    # ══════════════════════════════════════════════════════════
    # HANDLERS
    # ══════════════════════════════════════════════════════════

    def _handle_register(self, command: Command, *, role: Role) -> PrincipalRecord:
        record = self._registry.register(PrincipalRecord(
            principal=command.payload["principal"],
            role=role,
            name=command.payload["name"],
            business_registration_number=(
                command.payload["business_registration_number"]
            ),
            phone_number=command.payload["phone_number"],
            registered_at=command.issued_at,
        ))
        self._append(
            command,
            CUSTODY_ROLE_REGISTERED_V1,
            build_role_registered_payload(command, role),
        )
        return record

    def _handle_create(self, command: Command) -> Batch:
        batch = self._batches.create(
            batch_id=command.payload["batch_id"],
            item_name=command.payload["item_name"],
            manufactured_at=command.payload["manufactured_at"],
            expires_at=command.payload["expires_at"],
            production_details=command.payload["production_details"],
            creator=command.actor_id,
        )
        self._append(
            command,
            CUSTODY_BATCH_CREATED_V1,
            build_batch_created_payload(command, batch),
        )
        return batch

    def _handle_ship(self, command: Command, *, to_state: BatchState) -> Batch:
        batch_id = command.payload["batch_id"]
        recipient = command.payload["recipient"]
        from_holder = self._batches.get(batch_id).current_holder

        shipped = self._batches.mutate(
            batch_id,
            lambda b: replace(b, current_holder=recipient, state=to_state),
        )
        self._append(
            command,
            CUSTODY_BATCH_SHIPPED_V1,
            build_batch_shipped_payload(command, shipped, from_holder),
        )
        self._append(
            command,
            CUSTODY_NOTIFICATION_SENT_V1,
            build_notification_payload(command, shipped),
        )
        return shipped

    def _handle_advance(self, command: Command, *, to_state: BatchState) -> Batch:
        batch_id = command.payload["batch_id"]
        current = self._batches.get(batch_id)

        # Expiry is judged by the service clock, never by command.issued_at.
        now = self._config.clock.now_utc()
        if current.state in EXPIRABLE_STATES and is_past_deadline(
            current.expires_at, now,
        ):
            self._expire(command, current, now)

        advanced = self._batches.mutate(
            batch_id,
            lambda b: replace(
                b, state=to_state, state_details=command.payload["state_details"],
            ),
        )
        self._append(
            command,
            CUSTODY_BATCH_STATE_UPDATED_V1,
            build_state_updated_payload(command, advanced, current.state),
        )
        return advanced

    def _expire(self, command: Command, current: Batch, now: datetime) -> None:
        """Persist the expiry, then reject the requested advance."""
        expired = self._batches.mutate(
            current.batch_id,
            lambda b: replace(
                b,
                state=BatchState.EXPIRED,
                state_details=BatchState.EXPIRED.value,
            ),
        )
        self._append(
            command,
            CUSTODY_BATCH_STATE_UPDATED_V1,
            build_state_updated_payload(
                command, expired, current.state, note="expired on interaction",
            ),
        )
        logger.warning(
            f"Batch {current.batch_id} expired at "
            f"{current.expires_at.isoformat()}; observed by "
            f"'{command.actor_id}' at {now.isoformat()}"
        )
        raise BatchExpired(RejectionReason(
            code=ReasonCode.BATCH_EXPIRED,
            message=(
                f"Batch '{current.batch_id}' passed its expiry "
                f"{current.expires_at.isoformat()} and is now Expired."
            ),
            policy_name="batch_expiry_rule",
        ))

    # ══════════════════════════════════════════════════════════
    # OPERATIONS
    # ══════════════════════════════════════════════════════════

    def register_distributor(
        self, caller: str, principal: str, name: str,
        business_registration_number: str, phone_number: str,
    ) -> PrincipalRecord:
        return self.submit(caller, DistributorRegisterRequest(
            principal=principal,
            name=name,
            business_registration_number=business_registration_number,
            phone_number=phone_number,
        )).value

    def register_wholesaler(
        self, caller: str, principal: str, name: str,
        business_registration_number: str, phone_number: str,
    ) -> PrincipalRecord:
        return self.submit(caller, WholesalerRegisterRequest(
            principal=principal,
            name=name,
            business_registration_number=business_registration_number,
            phone_number=phone_number,
        )).value

    def create_batch(
        self, caller: str, batch_id: str, item_name: str,
        manufactured_at, expires_at, production_details: str = "",
    ) -> Batch:
        return self.submit(caller, BatchCreateRequest(
            batch_id=batch_id,
            item_name=item_name,
            manufactured_at=manufactured_at,
            expires_at=expires_at,
            production_details=production_details,
        )).value

    def ship_batch_to_distributor(
        self, caller: str, batch_id: str, to_distributor: str,
    ) -> Batch:
        return self.submit(caller, ShipToDistributorRequest(
            batch_id=batch_id, to_distributor=to_distributor,
        )).value

    def ship_batch_to_wholesaler(
        self, caller: str, batch_id: str, to_wholesaler: str,
    ) -> Batch:
        return self.submit(caller, ShipToWholesalerRequest(
            batch_id=batch_id, to_wholesaler=to_wholesaler,
        )).value

    def update_state_as_distributor(
        self, caller: str, batch_id: str, state_details: str,
    ) -> Batch:
        return self.submit(caller, DistributorStateUpdateRequest(
            batch_id=batch_id, state_details=state_details,
        )).value

    def update_state_as_wholesaler(
        self, caller: str, batch_id: str, state_details: str,
    ) -> Batch:
        return self.submit(caller, WholesalerStateUpdateRequest(
            batch_id=batch_id, state_details=state_details,
        )).value

    # ══════════════════════════════════════════════════════════
    # QUERIES (read-only)
    # ══════════════════════════════════════════════════════════

    def get_batch_details(self, batch_id: str) -> Batch:
        return self._batches.get(batch_id)

    def list_batches_held_by(self, principal: str) -> Tuple[Batch, ...]:
        return self._batches.held_by(principal)

    def shelf_life_remaining(self, batch_id: str) -> Optional[float]:
        """Seconds until expiry by the service clock, None once past."""
        batch = self._batches.get(batch_id)
        return seconds_until_deadline(batch.expires_at, self._config.clock.now_utc())

    def get_batch_history(self, batch_id: str) -> Tuple[CustodyStep, ...]:
        self._batches.get(batch_id)
        with self._lock:
            self._projection.apply_all(
                self._event_log.read(self._projection.next_sequence)
            )
            return self._projection.history(batch_id)

    def is_registered(self, principal: str, role: Role) -> bool:
        return self._registry.is_registered(principal, role)

    def get_distributor(self, principal: str) -> Optional[PrincipalRecord]:
        return self._registry.get(principal, Role.DISTRIBUTOR)

    def get_wholesaler(self, principal: str) -> Optional[PrincipalRecord]:
        return self._registry.get(principal, Role.WHOLESALER)

    def list_distributors(self) -> Tuple[str, ...]:
        return self._registry.list_registered(Role.DISTRIBUTOR)

    def list_wholesalers(self) -> Tuple[str, ...]:
        return self._registry.list_registered(Role.WHOLESALER)

    @property
    def administrator(self) -> str:
        return self._config.administrator

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    @property
    def event_type_registry(self) -> EventTypeRegistry:
        return self._event_type_registry
