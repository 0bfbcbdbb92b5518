#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Token ledger collaborators consumed by the vault.

The claim-token ledger (mint/burn/balance) and the stable-asset ledger
(transfer/balance) are external to the accounting core. The in-memory ledger
below implements both interfaces and can be journaled, so a vault operation
that fails after a transfer rolls the ledger back together with its own state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict

from .errors import InsufficientBalance, ZeroAmount
from .input_validation import normalize_address
from .safe_math import check_i128, checked_add, checked_sub


class ClaimTokenLedger(ABC):
    @abstractmethod
    def mint(self, to: str, amount: int) -> None:
        """Create ``amount`` claim tokens for ``to``."""

    @abstractmethod
    def burn(self, from_: str, amount: int) -> None:
        """Destroy ``amount`` claim tokens held by ``from_``; InsufficientBalance otherwise."""

    @abstractmethod
    def balance(self, address: str) -> int:
        """Current balance of ``address``."""

    @abstractmethod
    def total_supply(self) -> int:
        """Outstanding supply."""


class StableAssetLedger(ABC):
    @abstractmethod
    def transfer(self, from_: str, to: str, amount: int) -> None:
        """Move ``amount`` from ``from_`` to ``to``; InsufficientBalance otherwise."""

    @abstractmethod
    def balance(self, address: str) -> int:
        """Current balance of ``address``."""


class Journaled(ABC):
    """Collaborator whose state can be captured and rolled back."""

    @abstractmethod
    def snapshot(self) -> Any:
        ...

    @abstractmethod
    def restore(self, snapshot: Any) -> None:
        ...


class InMemoryTokenLedger(ClaimTokenLedger, StableAssetLedger, Journaled):
    """Fungible token ledger held in process memory."""

    def __init__(self, symbol: str = "TOKEN", decimals: int = 7):
        self.symbol = symbol
        self.decimals = decimals
        self._balances: Dict[str, int] = {}
        self._supply = 0

    def _check_amount(self, amount: int) -> int:
        check_i128(amount, "amount")
        if amount < 0:
            raise ZeroAmount(f"negative amount {amount}")
        return amount

    def balance(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def total_supply(self) -> int:
        return self._supply

    def mint(self, to: str, amount: int) -> None:
        self._check_amount(amount)
        to = normalize_address(to)
        self._balances[to] = checked_add(self._balances.get(to, 0), amount)
        self._supply = checked_add(self._supply, amount)

    def burn(self, from_: str, amount: int) -> None:
        self._check_amount(amount)
        from_ = normalize_address(from_)
        held = self._balances.get(from_, 0)
        if held < amount:
            raise InsufficientBalance(f"{self.symbol}: balance {held} < burn {amount}")
        self._balances[from_] = checked_sub(held, amount)
        self._supply = checked_sub(self._supply, amount)

    def transfer(self, from_: str, to: str, amount: int) -> None:
        self._check_amount(amount)
        from_ = normalize_address(from_)
        to = normalize_address(to)
        held = self._balances.get(from_, 0)
        if held < amount:
            raise InsufficientBalance(f"{self.symbol}: balance {held} < transfer {amount}")
        self._balances[from_] = checked_sub(held, amount)
        self._balances[to] = checked_add(self._balances.get(to, 0), amount)

    def snapshot(self) -> Any:
        return dict(self._balances), self._supply

    def restore(self, snapshot: Any) -> None:
        balances, supply = snapshot
        self._balances = dict(balances)
        self._supply = supply
