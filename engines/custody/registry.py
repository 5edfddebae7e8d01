"""
Custody Engine — Principal Registry
=====================================
Distributor and Wholesaler records keyed by principal identity.

RULES:
- A principal is registered at most once per role
- Registration is monotonic: no update, no removal
- Each role keeps its registered principals in registration order
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Dict, List, Optional, Tuple

from core.commands.rejection import ReasonCode, RejectionReason
from engines.custody.errors import AlreadyRegistered
from engines.custody.states import Role

logger = logging.getLogger("custody.registry")


@dataclass(frozen=True)
class PrincipalRecord:
    principal: str
    role: Role
    name: str
    business_registration_number: str
    phone_number: str
    registered_at: datetime
    registered: bool = True

    def to_dict(self) -> dict:
        return {
            "principal": self.principal,
            "role": self.role.value,
            "name": self.name,
            "business_registration_number": self.business_registration_number,
            "phone_number": self.phone_number,
            "registered_at": self.registered_at.isoformat(),
            "registered": self.registered,
        }


class PrincipalRegistry:
    """In-memory registry of licensed distributors and wholesalers."""

    def __init__(self):
        self._records: Dict[Role, Dict[str, PrincipalRecord]] = {
            role: {} for role in Role
        }
        self._order: Dict[Role, List[str]] = {role: [] for role in Role}
        self._lock = RLock()

    def register(self, record: PrincipalRecord) -> PrincipalRecord:
        with self._lock:
            if record.principal in self._records[record.role]:
                raise AlreadyRegistered(RejectionReason(
                    code=ReasonCode.ALREADY_REGISTERED,
                    message=(
                        f"Principal '{record.principal}' is already a "
                        f"registered {record.role.value.lower()}."
                    ),
                    policy_name="principal_registry",
                ))
            self._records[record.role][record.principal] = record
            self._order[record.role].append(record.principal)

        logger.info(f"{record.role.value} registered: {record.principal}")
        return record

    def is_registered(self, principal: str, role: Role) -> bool:
        with self._lock:
            return principal in self._records[role]

    def get(self, principal: str, role: Role) -> Optional[PrincipalRecord]:
        with self._lock:
            return self._records[role].get(principal)

    def list_registered(self, role: Role) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._order[role])

    def count(self, role: Role) -> int:
        with self._lock:
            return len(self._order[role])
