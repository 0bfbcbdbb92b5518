#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""NAV calculator and allocation controller.

``vault_value = sum(deployed per whitelisted strategy) + last RWA valuation``.
Both pieces are pure reads; rounding only happens in the mint/redeem
formulas in :mod:`rwa_vault.safe_math`.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Tuple

from .input_validation import validate_allocation
from .models import StrategyPosition, VaultConfig
from .safe_math import check_i128, checked_sum
from .storage import DataKey, StateStore
from .strategies import StrategyRegistry


class NavCalculator:
    """Read-only vault valuation.

    ``cached`` sums the recorded deployed amounts; ``live`` asks each
    whitelisted endpoint for its current value (yield and losses included).
    """

    def __init__(self, store: StateStore, registry: StrategyRegistry, source: str = "cached"):
        self.store = store
        self.registry = registry
        self.source = source

    def whitelist(self) -> Tuple[str, ...]:
        return tuple(self.store.get(DataKey.STRATEGIES, ()))

    def rwa_value(self) -> int:
        return int(self.store.get(DataKey.RWA_VALUE, 0))

    def deployed(self, strategy: str) -> int:
        position = self.store.get(DataKey.strategy_position(strategy), StrategyPosition())
        return position.deployed

    def strategy_values(self) -> Dict[str, int]:
        values: Dict[str, int] = {}
        for address in self.whitelist():
            if self.source == "live":
                values[address] = check_i128(
                    self.registry.resolve(address).get_deployed_value(), "deployed value"
                )
            else:
                values[address] = self.deployed(address)
        return values

    def onchain_value(self) -> int:
        return checked_sum(self.strategy_values().values())

    def vault_value(self) -> int:
        return checked_sum([self.onchain_value(), self.rwa_value()])


class AllocationController:
    """Owns the RWA / on-chain split and its sum-to-10000 invariant."""

    def ratio(self, config: VaultConfig) -> Tuple[int, int]:
        return config.alloc_rwa_bps, config.alloc_onchain_bps

    def apply(self, config: VaultConfig, rwa_bps: int, onchain_bps: int) -> VaultConfig:
        """Return a config carrying the new split; deployed capital is not rebalanced."""
        validate_allocation(rwa_bps, onchain_bps)
        return replace(config, alloc_rwa_bps=rwa_bps, alloc_onchain_bps=onchain_bps)
