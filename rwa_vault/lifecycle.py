#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Lifecycle gate: Uninitialized -> Active -> Matured.

Maturity is not a call but a predicate, ``now >= maturity_timestamp``, so
the vault never needs a transition operation and stays matured forever.
"""

from __future__ import annotations

from typing import Optional, Type

from .clock import LedgerClock
from .errors import LifecycleError, NotInitialized, VaultAlreadyMature, VaultLocked
from .models import Phase, VaultConfig


def phase_of(config: Optional[VaultConfig], now: int) -> Phase:
    if config is None:
        return Phase.UNINITIALIZED
    if now >= config.maturity_timestamp:
        return Phase.MATURED
    return Phase.ACTIVE


class LifecycleGate:
    def __init__(self, clock: LedgerClock):
        self.clock = clock

    def phase(self, config: Optional[VaultConfig]) -> Phase:
        return phase_of(config, self.clock.timestamp())

    def require_initialized(self, config: Optional[VaultConfig]) -> VaultConfig:
        if config is None:
            raise NotInitialized("vault has not been initialized")
        return config

    def require_active(self, config: Optional[VaultConfig]) -> None:
        """Deposits are only accepted before maturity."""
        if self.phase(self.require_initialized(config)) is not Phase.ACTIVE:
            raise VaultAlreadyMature(f"vault matured at {config.maturity_timestamp}")

    def require_matured(
        self, config: Optional[VaultConfig], error: Type[LifecycleError] = VaultLocked
    ) -> None:
        """Redemptions and physical claims are only accepted after maturity."""
        if self.phase(self.require_initialized(config)) is not Phase.MATURED:
            remaining = config.maturity_timestamp - self.clock.timestamp()
            raise error(f"vault matures in {remaining}s")

    def seconds_to_maturity(self, config: VaultConfig) -> int:
        return max(0, config.maturity_timestamp - self.clock.timestamp())
