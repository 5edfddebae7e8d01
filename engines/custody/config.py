"""
Custody Engine — Configuration
================================
Immutable configuration injected into CustodyService at construction:
the administrator principal and the clock. Nothing here is reassigned
for the lifetime of a service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from core.time.clock import Clock, SystemClock


@dataclass(frozen=True)
class CustodyConfig:
    administrator: str
    clock: Clock = field(default_factory=SystemClock)

    def __post_init__(self):
        if not self.administrator or not isinstance(self.administrator, str):
            raise ValueError("administrator must be a non-empty string.")


def load_custody_config(clock: Optional[Clock] = None) -> CustodyConfig:
    """Build CustodyConfig from Django settings (CUSTODY_ADMINISTRATOR)."""
    administrator = getattr(settings, "CUSTODY_ADMINISTRATOR", "")
    if not administrator:
        raise ImproperlyConfigured(
            "CUSTODY_ADMINISTRATOR must be set to the administrator principal."
        )
    return CustodyConfig(
        administrator=administrator,
        clock=clock if clock is not None else SystemClock(),
    )
