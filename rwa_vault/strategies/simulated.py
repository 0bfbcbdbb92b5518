#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""In-process strategy endpoint holding funds on an in-memory stable ledger."""

from __future__ import annotations

from typing import Any

from ..errors import ZeroAmount
from ..input_validation import normalize_address
from ..ledgers import InMemoryTokenLedger, Journaled
from .base import Strategy


class SimulatedStrategy(Strategy, Journaled):
    """Strategy whose value is its own balance on the stable-asset ledger.

    Yield is simulated with :meth:`accrue`, losses with :meth:`slash`. A
    withdrawal covering the whole principal also sweeps accrued yield back.
    """

    def __init__(self, address: str, stable: InMemoryTokenLedger, vault_address: str):
        self.address = normalize_address(address)
        self.stable = stable
        self.vault_address = normalize_address(vault_address)
        self.principal = 0

    def deploy(self, amount: int) -> int:
        if amount <= 0:
            raise ZeroAmount("deploy amount must be > 0")
        self.principal += amount
        return amount

    def withdraw(self, amount: int) -> int:
        balance = self.stable.balance(self.address)
        if amount >= self.principal:
            returned = balance
            self.principal = 0
        else:
            returned = min(amount, balance)
            self.principal -= amount
        if returned > 0:
            self.stable.transfer(self.address, self.vault_address, returned)
        return returned

    def get_deployed_value(self) -> int:
        return self.stable.balance(self.address)

    def accrue(self, amount: int) -> None:
        self.stable.mint(self.address, amount)

    def slash(self, amount: int) -> None:
        self.stable.burn(self.address, min(amount, self.stable.balance(self.address)))

    def snapshot(self) -> Any:
        return self.principal

    def restore(self, snapshot: Any) -> None:
        self.principal = snapshot
