"""
Custody Engine Test Suite
===========================
Tests verify:
- Request validation and command conversion
- Event type registration and payload building
- Access control and lifecycle policies
- Service orchestration (command → mutation → event log)
- Expiry rule precedence and its persisted side effect
- End-to-end custody chains
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest

from core.commands.rejection import ReasonCode
from core.event_store.log import EventLog
from core.event_store.validators.registry import EventTypeRegistry
from core.time.clock import FixedClock, from_epoch
from engines.custody.batch_store import BatchStore
from engines.custody.commands import (
    BatchCreateRequest,
    DistributorRegisterRequest,
    DistributorStateUpdateRequest,
    ShipToDistributorRequest,
)
from engines.custody.config import CustodyConfig
from engines.custody.errors import (
    AlreadyRegistered,
    BatchExpired,
    DuplicateBatchID,
    InvalidTransition,
    NotFound,
    Unauthorized,
)
from engines.custody.events import (
    CUSTODY_BATCH_CREATED_V1,
    CUSTODY_BATCH_SHIPPED_V1,
    CUSTODY_BATCH_STATE_UPDATED_V1,
    CUSTODY_EVENT_TYPES,
    CUSTODY_NOTIFICATION_SENT_V1,
    CUSTODY_ROLE_REGISTERED_V1,
    register_custody_event_types,
)
from engines.custody.policies import (
    administrator_only_policy,
    current_holder_policy,
    transition_must_be_legal_policy,
)
from engines.custody.registry import PrincipalRegistry
from engines.custody.services import CustodyService
from engines.custody.states import BatchState, Role

ADMIN = "0xADMIN"
D1 = "0xD1"
D2 = "0xD2"
W1 = "0xW1"
STRANGER = "0xSTRANGER"

MFG = from_epoch(100)
EXPIRY = from_epoch(1000)


# ══════════════════════════════════════════════════════════════
# TEST HELPERS
# ══════════════════════════════════════════════════════════════

def make_command_args(actor_id: str = ADMIN, at: datetime = MFG):
    return dict(
        actor_id=actor_id,
        command_id=uuid.uuid4(),
        correlation_id=uuid.uuid4(),
        issued_at=at,
    )


@pytest.fixture
def clock():
    return FixedClock.at_epoch(100)


@pytest.fixture
def service(clock):
    return CustodyService(config=CustodyConfig(administrator=ADMIN, clock=clock))


@pytest.fixture
def shipped(service):
    """B1 created, D1 and W1 registered, B1 shipped to D1."""
    service.create_batch(ADMIN, "B1", "Insulin", MFG, EXPIRY, "Line 4")
    service.register_distributor(ADMIN, D1, "North Dist", "BRN-1", "555-0101")
    service.register_wholesaler(ADMIN, W1, "Metro Wholesale", "BRN-2", "555-0202")
    service.ship_batch_to_distributor(ADMIN, "B1", D1)
    return service


@pytest.fixture
def distributed(shipped, clock):
    """B1 received by D1 at t=500 and shipped on to W1."""
    clock.set_epoch(500)
    shipped.update_state_as_distributor(D1, "B1", "ok")
    shipped.ship_batch_to_wholesaler(D1, "B1", W1)
    return shipped


def snapshot(service, batch_id="B1"):
    batch = service.get_batch_details(batch_id)
    return batch.state, batch.current_holder


# ══════════════════════════════════════════════════════════════
# COMMANDS
# ══════════════════════════════════════════════════════════════

class TestCustodyCommands:
    def test_batch_create_request(self):
        req = BatchCreateRequest(
            batch_id="B1", item_name="Insulin",
            manufactured_at=MFG, expires_at=EXPIRY,
        )
        cmd = req.to_command(**make_command_args())
        assert cmd.command_type == "custody.batch.create.request"
        assert cmd.source_engine == "custody"
        assert cmd.payload["expires_at"] == EXPIRY

    def test_batch_create_rejects_naive_dates(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            BatchCreateRequest(
                batch_id="B1", item_name="Insulin",
                manufactured_at=datetime(2026, 1, 1), expires_at=EXPIRY,
            )

    def test_batch_create_rejects_expiry_before_manufacture(self):
        with pytest.raises(ValueError, match="precede"):
            BatchCreateRequest(
                batch_id="B1", item_name="Insulin",
                manufactured_at=EXPIRY, expires_at=MFG,
            )

    def test_batch_create_rejects_empty_id(self):
        with pytest.raises(ValueError, match="batch_id"):
            BatchCreateRequest(
                batch_id="", item_name="Insulin",
                manufactured_at=MFG, expires_at=EXPIRY,
            )

    def test_register_request(self):
        req = DistributorRegisterRequest(
            principal=D1, name="North Dist",
            business_registration_number="BRN-1", phone_number="555",
        )
        cmd = req.to_command(**make_command_args())
        assert cmd.command_type == "custody.distributor.register.request"
        assert cmd.payload["principal"] == D1

    def test_register_request_requires_phone(self):
        with pytest.raises(ValueError, match="phone_number"):
            DistributorRegisterRequest(
                principal=D1, name="North Dist",
                business_registration_number="BRN-1", phone_number="",
            )

    def test_ship_request_maps_recipient(self):
        cmd = ShipToDistributorRequest(batch_id="B1", to_distributor=D1).to_command(
            **make_command_args()
        )
        assert cmd.payload == {"batch_id": "B1", "recipient": D1}

    def test_state_update_allows_empty_details(self):
        cmd = DistributorStateUpdateRequest(batch_id="B1", state_details="").to_command(
            **make_command_args(D1)
        )
        assert cmd.payload["state_details"] == ""


# ══════════════════════════════════════════════════════════════
# EVENTS
# ══════════════════════════════════════════════════════════════

class TestCustodyEvents:
    def test_event_registration(self):
        registry = EventTypeRegistry()
        register_custody_event_types(registry)
        for event_type in CUSTODY_EVENT_TYPES:
            assert registry.is_registered(event_type)

    def test_service_registers_types_on_shared_registry(self):
        registry = EventTypeRegistry()
        CustodyService(
            config=CustodyConfig(administrator=ADMIN, clock=FixedClock.at_epoch(0)),
            event_type_registry=registry,
        )
        assert registry.count() == len(CUSTODY_EVENT_TYPES)


# ══════════════════════════════════════════════════════════════
# POLICIES
# ══════════════════════════════════════════════════════════════

class TestAccessControlPolicies:
    def _command(self, actor_id):
        return DistributorStateUpdateRequest(
            batch_id="B1", state_details="ok",
        ).to_command(**make_command_args(actor_id))

    def test_administrator_only(self):
        assert administrator_only_policy(self._command(ADMIN), ADMIN) is None
        rejection = administrator_only_policy(self._command(D1), ADMIN)
        assert rejection.code == ReasonCode.UNAUTHORIZED

    def test_current_holder_not_found(self):
        store = BatchStore()
        rejection = current_holder_policy(self._command(ADMIN), store.find)
        assert rejection.code == ReasonCode.NOT_FOUND

    def test_current_holder(self):
        store = BatchStore()
        store.create(
            batch_id="B1", item_name="Insulin", manufactured_at=MFG,
            expires_at=EXPIRY, production_details="", creator=ADMIN,
        )
        assert current_holder_policy(self._command(ADMIN), store.find) is None
        rejection = current_holder_policy(self._command(D1), store.find)
        assert rejection.code == ReasonCode.UNAUTHORIZED

    def test_transition_policy_lists_allowed_states(self):
        store = BatchStore()
        store.create(
            batch_id="B1", item_name="Insulin", manufactured_at=MFG,
            expires_at=EXPIRY, production_details="", creator=ADMIN,
        )
        rejection = transition_must_be_legal_policy(
            self._command(ADMIN), store.find, BatchState.RECEIVED,
        )
        assert rejection.code == ReasonCode.INVALID_TRANSITION
        assert "Shipped" in rejection.message


# ══════════════════════════════════════════════════════════════
# REGISTRY OPERATIONS
# ══════════════════════════════════════════════════════════════

class TestRegistration:
    def test_register_distributor(self, service):
        record = service.register_distributor(ADMIN, D1, "North Dist", "BRN-1", "555")
        assert record.registered
        assert record.role == Role.DISTRIBUTOR
        assert service.is_registered(D1, Role.DISTRIBUTOR)
        assert not service.is_registered(D1, Role.WHOLESALER)

    def test_register_requires_administrator(self, service):
        with pytest.raises(Unauthorized):
            service.register_distributor(D1, D1, "North Dist", "BRN-1", "555")
        assert not service.is_registered(D1, Role.DISTRIBUTOR)
        assert len(service.event_log) == 0

    def test_second_registration_rejected_and_record_unchanged(self, service):
        service.register_distributor(ADMIN, D1, "North Dist", "BRN-1", "555")
        before = service.get_distributor(D1)

        with pytest.raises(AlreadyRegistered) as exc_info:
            service.register_distributor(ADMIN, D1, "Renamed", "BRN-9", "999")

        assert exc_info.value.reason.code == ReasonCode.ALREADY_REGISTERED
        assert service.get_distributor(D1) == before
        assert service.list_distributors() == (D1,)

    def test_same_principal_may_hold_both_roles(self, service):
        service.register_distributor(ADMIN, D1, "North Dist", "BRN-1", "555")
        service.register_wholesaler(ADMIN, D1, "North Wholesale", "BRN-1", "555")
        assert service.is_registered(D1, Role.WHOLESALER)

    def test_enumeration_preserves_registration_order(self, service):
        for principal in (D2, D1):
            service.register_distributor(ADMIN, principal, "Dist", "BRN", "555")
        service.register_wholesaler(ADMIN, W1, "Metro", "BRN-2", "555")
        assert service.list_distributors() == (D2, D1)
        assert service.list_wholesalers() == (W1,)

    def test_emits_role_registered(self, service):
        service.register_wholesaler(ADMIN, W1, "Metro", "BRN-2", "555")
        (entry,) = service.event_log.read()
        assert entry.event_type == CUSTODY_ROLE_REGISTERED_V1
        assert entry.payload["principal"] == W1
        assert entry.payload["role"] == "Wholesaler"


# ══════════════════════════════════════════════════════════════
# BATCH CREATION
# ══════════════════════════════════════════════════════════════

class TestCreateBatch:
    def test_create_then_get(self, service):
        service.create_batch(ADMIN, "B1", "Insulin", MFG, EXPIRY, "Line 4")
        batch = service.get_batch_details("B1")
        assert batch.state == BatchState.MANUFACTURED
        assert batch.state_details == "Manufactured"
        assert batch.current_holder == ADMIN
        assert batch.expires_at == EXPIRY
        assert batch.production_details == "Line 4"

    def test_duplicate_rejected(self, service):
        service.create_batch(ADMIN, "B1", "Insulin", MFG, EXPIRY)
        with pytest.raises(DuplicateBatchID):
            service.create_batch(ADMIN, "B1", "Other", MFG, EXPIRY)
        assert service.get_batch_details("B1").item_name == "Insulin"

    def test_create_requires_administrator(self, service):
        with pytest.raises(Unauthorized):
            service.create_batch(D1, "B1", "Insulin", MFG, EXPIRY)
        with pytest.raises(NotFound):
            service.get_batch_details("B1")

    def test_emits_batch_created(self, service):
        service.create_batch(ADMIN, "B1", "Insulin", MFG, EXPIRY)
        (entry,) = service.event_log.read()
        assert entry.event_type == CUSTODY_BATCH_CREATED_V1
        assert entry.payload["state"] == "Manufactured"
        assert entry.payload["expires_at"] == EXPIRY.isoformat()

    def test_get_unknown_batch(self, service):
        with pytest.raises(NotFound):
            service.get_batch_details("nope")


# ══════════════════════════════════════════════════════════════
# TRANSITIONS ON UNKNOWN BATCHES
# ══════════════════════════════════════════════════════════════

class TestUnknownBatch:
    @pytest.fixture(autouse=True)
    def _principals(self, service):
        service.register_distributor(ADMIN, D1, "North Dist", "BRN-1", "555")
        service.register_wholesaler(ADMIN, W1, "Metro", "BRN-2", "555")

    def test_ship_to_distributor(self, service):
        with pytest.raises(NotFound):
            service.ship_batch_to_distributor(ADMIN, "ghost", D1)

    def test_ship_to_distributor_by_stranger(self, service):
        with pytest.raises(NotFound):
            service.ship_batch_to_distributor(STRANGER, "ghost", D1)

    def test_ship_to_wholesaler(self, service):
        with pytest.raises(NotFound):
            service.ship_batch_to_wholesaler(D1, "ghost", W1)

    def test_update_as_distributor(self, service):
        with pytest.raises(NotFound):
            service.update_state_as_distributor(D1, "ghost", "ok")

    def test_update_as_wholesaler(self, service):
        with pytest.raises(NotFound):
            service.update_state_as_wholesaler(W1, "ghost", "ok")


# ══════════════════════════════════════════════════════════════
# SHIP TO DISTRIBUTOR
# ══════════════════════════════════════════════════════════════

class TestShipToDistributor:
    @pytest.fixture
    def ready(self, service):
        service.create_batch(ADMIN, "B1", "Insulin", MFG, EXPIRY)
        service.register_distributor(ADMIN, D1, "North Dist", "BRN-1", "555")
        return service

    def test_ships(self, ready):
        batch = ready.ship_batch_to_distributor(ADMIN, "B1", D1)
        assert batch.state == BatchState.SHIPPED
        assert batch.current_holder == D1
        assert ready.list_batches_held_by(D1) == (batch,)

    def test_emits_shipped_then_notification(self, ready):
        start = len(ready.event_log)
        ready.ship_batch_to_distributor(ADMIN, "B1", D1)
        shipped, notification = ready.event_log.read(start)
        assert shipped.event_type == CUSTODY_BATCH_SHIPPED_V1
        assert shipped.payload["from_holder"] == ADMIN
        assert shipped.payload["to_holder"] == D1
        assert notification.event_type == CUSTODY_NOTIFICATION_SENT_V1
        assert notification.payload["recipient"] == D1
        assert shipped.correlation_id == notification.correlation_id

    def test_requires_administrator(self, ready):
        with pytest.raises(Unauthorized):
            ready.ship_batch_to_distributor(D1, "B1", D1)
        assert snapshot(ready) == (BatchState.MANUFACTURED, ADMIN)

    def test_recipient_must_be_registered(self, ready):
        with pytest.raises(Unauthorized, match="not registered"):
            ready.ship_batch_to_distributor(ADMIN, "B1", STRANGER)
        assert snapshot(ready) == (BatchState.MANUFACTURED, ADMIN)

    def test_wholesaler_is_not_a_distributor(self, ready):
        ready.register_wholesaler(ADMIN, W1, "Metro", "BRN-2", "555")
        with pytest.raises(Unauthorized):
            ready.ship_batch_to_distributor(ADMIN, "B1", W1)

    def test_only_from_manufactured(self, ready):
        ready.ship_batch_to_distributor(ADMIN, "B1", D1)
        ready.register_distributor(ADMIN, D2, "South Dist", "BRN-3", "555")
        with pytest.raises(InvalidTransition):
            ready.ship_batch_to_distributor(ADMIN, "B1", D2)
        assert snapshot(ready) == (BatchState.SHIPPED, D1)

    def test_rejection_appends_nothing(self, ready):
        start = len(ready.event_log)
        with pytest.raises(Unauthorized):
            ready.ship_batch_to_distributor(ADMIN, "B1", STRANGER)
        assert len(ready.event_log) == start


# ══════════════════════════════════════════════════════════════
# UPDATE AS DISTRIBUTOR
# ══════════════════════════════════════════════════════════════

class TestUpdateAsDistributor:
    def test_receives(self, shipped, clock):
        clock.set_epoch(500)
        batch = shipped.update_state_as_distributor(D1, "B1", "cold chain intact")
        assert batch.state == BatchState.RECEIVED
        assert batch.state_details == "cold chain intact"
        assert batch.current_holder == D1

    def test_emits_state_updated(self, shipped):
        shipped.update_state_as_distributor(D1, "B1", "ok")
        *_, entry = shipped.event_log.read()
        assert entry.event_type == CUSTODY_BATCH_STATE_UPDATED_V1
        assert entry.payload["previous_state"] == "Shipped"
        assert entry.payload["state"] == "Received"

    def test_requires_current_holder(self, shipped):
        shipped.register_distributor(ADMIN, D2, "South Dist", "BRN-3", "555")
        with pytest.raises(Unauthorized):
            shipped.update_state_as_distributor(D2, "B1", "ok")
        assert snapshot(shipped) == (BatchState.SHIPPED, D1)

    def test_administrator_is_not_holder(self, shipped):
        with pytest.raises(Unauthorized):
            shipped.update_state_as_distributor(ADMIN, "B1", "ok")

    def test_holder_must_be_registered_distributor(self, service):
        service.create_batch(ADMIN, "B1", "Insulin", MFG, EXPIRY)
        service.register_distributor(ADMIN, D1, "North Dist", "BRN-1", "555")
        service.register_wholesaler(ADMIN, W1, "Metro", "BRN-2", "555")
        service.ship_batch_to_distributor(ADMIN, "B1", D1)
        service.update_state_as_distributor(D1, "B1", "ok")
        service.ship_batch_to_wholesaler(D1, "B1", W1)

        # W1 holds B1 but is not a distributor
        with pytest.raises(Unauthorized, match="registered distributor"):
            service.update_state_as_distributor(W1, "B1", "ok")
        assert snapshot(service) == (BatchState.DISTRIBUTED, W1)

    def test_only_from_shipped(self, shipped):
        shipped.update_state_as_distributor(D1, "B1", "ok")
        with pytest.raises(InvalidTransition):
            shipped.update_state_as_distributor(D1, "B1", "again")
        assert shipped.get_batch_details("B1").state_details == "ok"

    def test_at_expiry_instant_still_succeeds(self, shipped, clock):
        clock.set_epoch(1000)
        batch = shipped.update_state_as_distributor(D1, "B1", "just in time")
        assert batch.state == BatchState.RECEIVED


# ══════════════════════════════════════════════════════════════
# EXPIRY RULE
# ══════════════════════════════════════════════════════════════

class TestExpiry:
    def test_expired_shipped_batch(self, shipped, clock):
        clock.set_epoch(1500)
        with pytest.raises(BatchExpired) as exc_info:
            shipped.update_state_as_distributor(D1, "B1", "ok")

        assert exc_info.value.reason.code == ReasonCode.BATCH_EXPIRED
        batch = shipped.get_batch_details("B1")
        assert batch.state == BatchState.EXPIRED
        assert batch.state_details == "Expired"
        assert batch.current_holder == D1
        assert batch.expires_at == EXPIRY

    def test_expiry_is_logged(self, shipped, clock):
        clock.set_epoch(1500)
        start = len(shipped.event_log)
        with pytest.raises(BatchExpired):
            shipped.update_state_as_distributor(D1, "B1", "ok")

        (entry,) = shipped.event_log.read(start)
        assert entry.event_type == CUSTODY_BATCH_STATE_UPDATED_V1
        assert entry.payload["previous_state"] == "Shipped"
        assert entry.payload["state"] == "Expired"

    def test_expired_batch_is_terminal(self, shipped, clock):
        clock.set_epoch(1500)
        with pytest.raises(BatchExpired):
            shipped.update_state_as_distributor(D1, "B1", "ok")
        start = len(shipped.event_log)

        with pytest.raises(InvalidTransition):
            shipped.update_state_as_distributor(D1, "B1", "ok")
        assert len(shipped.event_log) == start

    def test_unauthorized_caller_does_not_trigger_expiry(self, shipped, clock):
        clock.set_epoch(1500)
        with pytest.raises(Unauthorized):
            shipped.update_state_as_distributor(STRANGER, "B1", "ok")
        assert shipped.get_batch_details("B1").state == BatchState.SHIPPED

    def test_shipping_ignores_expiry(self, service, clock):
        service.create_batch(ADMIN, "B1", "Insulin", MFG, EXPIRY)
        service.register_distributor(ADMIN, D1, "North Dist", "BRN-1", "555")
        clock.set_epoch(1500)
        batch = service.ship_batch_to_distributor(ADMIN, "B1", D1)
        assert batch.state == BatchState.SHIPPED

    def test_expired_distributed_batch(self, distributed, clock):
        clock.set_epoch(2000)
        with pytest.raises(BatchExpired):
            distributed.update_state_as_wholesaler(W1, "B1", "shelved")
        assert snapshot(distributed) == (BatchState.EXPIRED, W1)

    def test_shelf_life_remaining(self, shipped, clock):
        assert shipped.shelf_life_remaining("B1") == 900
        clock.set_epoch(1001)
        assert shipped.shelf_life_remaining("B1") is None


# ══════════════════════════════════════════════════════════════
# SHIP TO WHOLESALER / UPDATE AS WHOLESALER
# ══════════════════════════════════════════════════════════════

class TestWholesaleLeg:
    @pytest.fixture
    def received(self, shipped, clock):
        clock.set_epoch(500)
        shipped.update_state_as_distributor(D1, "B1", "ok")
        return shipped

    def test_ship_to_wholesaler(self, received):
        batch = received.ship_batch_to_wholesaler(D1, "B1", W1)
        assert batch.state == BatchState.DISTRIBUTED
        assert batch.current_holder == W1

    def test_ship_requires_holder(self, received):
        with pytest.raises(Unauthorized):
            received.ship_batch_to_wholesaler(ADMIN, "B1", W1)
        assert snapshot(received) == (BatchState.RECEIVED, D1)

    def test_recipient_must_be_wholesaler(self, received):
        received.register_distributor(ADMIN, D2, "South Dist", "BRN-3", "555")
        with pytest.raises(Unauthorized, match="not registered"):
            received.ship_batch_to_wholesaler(D1, "B1", D2)

    def test_ship_only_from_received(self, shipped):
        with pytest.raises(InvalidTransition):
            shipped.ship_batch_to_wholesaler(D1, "B1", W1)

    def test_update_as_wholesaler(self, distributed):
        batch = distributed.update_state_as_wholesaler(W1, "B1", "shelved")
        assert batch.state == BatchState.WHOLESALED
        assert batch.state_details == "shelved"

    def test_update_requires_holder(self, distributed):
        distributed.register_wholesaler(ADMIN, "0xW2", "Other", "BRN-4", "555")
        with pytest.raises(Unauthorized):
            distributed.update_state_as_wholesaler("0xW2", "B1", "shelved")
        assert snapshot(distributed) == (BatchState.DISTRIBUTED, W1)

    def test_holder_must_be_registered_wholesaler(self, shipped):
        # D1 holds B1 but is not a wholesaler
        with pytest.raises(Unauthorized, match="registered wholesaler"):
            shipped.update_state_as_wholesaler(D1, "B1", "shelved")
        assert snapshot(shipped) == (BatchState.SHIPPED, D1)

    def test_wholesaled_is_terminal(self, distributed):
        distributed.update_state_as_wholesaler(W1, "B1", "shelved")
        with pytest.raises(InvalidTransition):
            distributed.update_state_as_wholesaler(W1, "B1", "again")


# ══════════════════════════════════════════════════════════════
# END-TO-END
# ══════════════════════════════════════════════════════════════

class TestEndToEnd:
    def test_receive_then_reship_is_invalid(self, service, clock):
        service.create_batch(ADMIN, "B1", "Insulin", from_epoch(100), from_epoch(1000))
        service.register_distributor(ADMIN, D1, "North Dist", "BRN-1", "555")

        shipped = service.ship_batch_to_distributor(ADMIN, "B1", D1)
        assert (shipped.state, shipped.current_holder) == (BatchState.SHIPPED, D1)

        clock.set_epoch(500)
        received = service.update_state_as_distributor(D1, "B1", "ok")
        assert received.state == BatchState.RECEIVED

        with pytest.raises(InvalidTransition):
            service.ship_batch_to_distributor(ADMIN, "B1", D1)

    def test_late_receipt_expires(self, service, clock):
        service.create_batch(ADMIN, "B1", "Insulin", from_epoch(100), from_epoch(1000))
        service.register_distributor(ADMIN, D1, "North Dist", "BRN-1", "555")
        service.ship_batch_to_distributor(ADMIN, "B1", D1)

        clock.set_epoch(1500)
        with pytest.raises(BatchExpired):
            service.update_state_as_distributor(D1, "B1", "ok")
        assert service.get_batch_details("B1").state == BatchState.EXPIRED

    def test_full_chain_history_and_log(self, distributed):
        distributed.update_state_as_wholesaler(W1, "B1", "shelved")

        history = distributed.get_batch_history("B1")
        assert [(s.state, s.holder) for s in history] == [
            ("Manufactured", ADMIN),
            ("Shipped", D1),
            ("Received", D1),
            ("Distributed", W1),
            ("Wholesaled", W1),
        ]
        assert history[-1].state_details == "shelved"

        types = [e.event_type for e in distributed.event_log.read()]
        assert types == [
            CUSTODY_BATCH_CREATED_V1,
            CUSTODY_ROLE_REGISTERED_V1,
            CUSTODY_ROLE_REGISTERED_V1,
            CUSTODY_BATCH_SHIPPED_V1,
            CUSTODY_NOTIFICATION_SENT_V1,
            CUSTODY_BATCH_STATE_UPDATED_V1,
            CUSTODY_BATCH_SHIPPED_V1,
            CUSTODY_NOTIFICATION_SENT_V1,
            CUSTODY_BATCH_STATE_UPDATED_V1,
        ]
        assert distributed.event_log.verify_chain()

    def test_history_records_expiry(self, shipped, clock):
        clock.set_epoch(1500)
        with pytest.raises(BatchExpired):
            shipped.update_state_as_distributor(D1, "B1", "ok")
        assert shipped.get_batch_history("B1")[-1].state == "Expired"

    def test_history_of_unknown_batch(self, service):
        with pytest.raises(NotFound):
            service.get_batch_history("ghost")


class TestExecute:
    def test_submit_returns_entries(self, service):
        result = service.submit(ADMIN, BatchCreateRequest(
            batch_id="B1", item_name="Insulin",
            manufactured_at=MFG, expires_at=EXPIRY,
        ))
        assert result.value.batch_id == "B1"
        assert [e.event_type for e in result.entries] == [CUSTODY_BATCH_CREATED_V1]
        assert result.entries[0].correlation_id == result.command.correlation_id

    def test_issued_at_comes_from_clock(self, service, clock):
        clock.set_epoch(250)
        result = service.submit(ADMIN, BatchCreateRequest(
            batch_id="B1", item_name="Insulin",
            manufactured_at=MFG, expires_at=EXPIRY,
        ))
        assert result.command.issued_at == datetime(
            1970, 1, 1, 0, 4, 10, tzinfo=timezone.utc,
        )

    def test_unsupported_command_type(self, service):
        from core.commands.base import Command

        command = Command(
            command_id=uuid.uuid4(),
            command_type="custody.batch.recall.request",
            actor_id=ADMIN,
            payload={},
            issued_at=MFG,
            correlation_id=uuid.uuid4(),
            source_engine="custody",
        )
        with pytest.raises(ValueError, match="Unsupported"):
            service.execute(command)

    def test_expiry_uses_service_clock_not_issued_at(self, shipped, clock):
        clock.set_epoch(1500)
        command = DistributorStateUpdateRequest(
            batch_id="B1", state_details="ok",
        ).to_command(**make_command_args(D1, at=from_epoch(500)))

        with pytest.raises(BatchExpired):
            shipped.execute(command)
        assert shipped.get_batch_details("B1").state == BatchState.EXPIRED


# ══════════════════════════════════════════════════════════════
# WIRING
# ══════════════════════════════════════════════════════════════

class TestServiceWiring:
    def _config(self):
        return CustodyConfig(administrator=ADMIN, clock=FixedClock.at_epoch(100))

    def test_injected_empty_log_and_store_are_used(self):
        seen = []
        registry = EventTypeRegistry()
        log = EventLog(registry, sinks=[seen.append])
        store = BatchStore()
        principals = PrincipalRegistry()

        service = CustodyService(
            config=self._config(),
            event_type_registry=registry,
            event_log=log,
            registry=principals,
            batch_store=store,
        )
        service.create_batch(ADMIN, "B1", "Insulin", MFG, EXPIRY)
        service.register_distributor(ADMIN, D1, "North Dist", "BRN-1", "555")

        assert service.event_log is log
        assert [e.event_type for e in seen] == [
            CUSTODY_BATCH_CREATED_V1, CUSTODY_ROLE_REGISTERED_V1,
        ]
        assert store.exists("B1")
        assert principals.is_registered(D1, Role.DISTRIBUTOR)

    def test_log_over_foreign_registry_is_refused(self):
        foreign = EventLog(EventTypeRegistry())
        with pytest.raises(ValueError, match="does not accept"):
            CustodyService(config=self._config(), event_log=foreign)

    def test_log_with_custody_types_preregistered(self):
        registry = EventTypeRegistry()
        register_custody_event_types(registry)
        log = EventLog(registry)

        service = CustodyService(config=self._config(), event_log=log)
        service.create_batch(ADMIN, "B1", "Insulin", MFG, EXPIRY)
        assert len(log) == 1
