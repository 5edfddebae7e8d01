"""
Custody Engine — States, Roles and the Batch Workflow
=======================================================
The fixed custody chain:

    Manufactured → Shipped → Received → Distributed → Wholesaled

plus the absorbing Expired state, reachable from Shipped or Distributed
when a holder touches a batch past its expiry instant.
"""

from __future__ import annotations

from enum import Enum

from core.primitives.workflow import WorkflowDefinition


class BatchState(Enum):
    MANUFACTURED = "Manufactured"
    SHIPPED = "Shipped"
    RECEIVED = "Received"
    DISTRIBUTED = "Distributed"
    WHOLESALED = "Wholesaled"
    EXPIRED = "Expired"


class Role(Enum):
    DISTRIBUTOR = "Distributor"
    WHOLESALER = "Wholesaler"


CUSTODY_BATCH_WORKFLOW = WorkflowDefinition(
    name="CustodyBatch",
    initial_state=BatchState.MANUFACTURED.value,
    terminal_states=frozenset({
        BatchState.WHOLESALED.value,
        BatchState.EXPIRED.value,
    }),
    transitions={
        BatchState.MANUFACTURED.value: frozenset({BatchState.SHIPPED.value}),
        BatchState.SHIPPED.value: frozenset({
            BatchState.RECEIVED.value,
            BatchState.EXPIRED.value,
        }),
        BatchState.RECEIVED.value: frozenset({BatchState.DISTRIBUTED.value}),
        BatchState.DISTRIBUTED.value: frozenset({
            BatchState.WHOLESALED.value,
            BatchState.EXPIRED.value,
        }),
        BatchState.WHOLESALED.value: frozenset(),
        BatchState.EXPIRED.value: frozenset(),
    },
)

# States in which an interaction can discover an overdue batch.
EXPIRABLE_STATES = frozenset({BatchState.SHIPPED, BatchState.DISTRIBUTED})
