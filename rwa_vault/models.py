#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Vault data model: configuration, claim records and strategy positions."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, Dict, Type


class Phase(str, Enum):
    """Lifecycle phase derived from configuration and ledger time."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    MATURED = "matured"


@dataclass(frozen=True)
class VaultConfig:
    """Global vault parameters written once by ``initialize``."""

    admin: str
    claim_token: str
    stable_asset: str
    oracle: str
    alloc_rwa_bps: int
    alloc_onchain_bps: int
    maturity_timestamp: int
    buyback_price: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VaultConfig":
        return cls(**{f.name: data[f.name] for f in fields(cls)})


@dataclass(frozen=True)
class ClaimRecord:
    """Physical-asset delivery obligation created by ``claim_physical``."""

    amount: int
    delivery_hash: bytes
    created_at: int
    fulfilled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": self.amount,
            "delivery_hash": "0x" + self.delivery_hash.hex(),
            "created_at": self.created_at,
            "fulfilled": self.fulfilled,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClaimRecord":
        raw_hash = str(data["delivery_hash"])
        if raw_hash.startswith("0x"):
            raw_hash = raw_hash[2:]
        return cls(
            amount=int(data["amount"]),
            delivery_hash=bytes.fromhex(raw_hash),
            created_at=int(data["created_at"]),
            fulfilled=bool(data.get("fulfilled", False)),
        )


@dataclass(frozen=True)
class StrategyPosition:
    """Deployed-capital accounting for one whitelisted strategy.

    ``deployed`` never exceeds ``total_transferred``.
    """

    deployed: int = 0
    total_transferred: int = 0
    total_returned: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StrategyPosition":
        return cls(
            deployed=int(data.get("deployed", 0)),
            total_transferred=int(data.get("total_transferred", 0)),
            total_returned=int(data.get("total_returned", 0)),
        )


MODEL_TYPES: Dict[str, Type[Any]] = {
    "VaultConfig": VaultConfig,
    "ClaimRecord": ClaimRecord,
    "StrategyPosition": StrategyPosition,
}
