#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Operator snapshot of a persisted vault state file.

Three sections:

* **Lifecycle** - phase, maturity countdown, buyback price and principals.
* **Accounting** - NAV (cached deployed amounts plus RWA valuation),
  allocation split, cumulative deposits and per-strategy positions.
* **Retention** - entries close to archival or already archived.

The report reads the state file only; it never needs ledger or RPC access.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Tuple

from .constants import DAY_IN_LEDGERS
from .errors import EntryArchived
from .lifecycle import LifecycleGate
from .models import Phase, StrategyPosition, VaultConfig
from .nav import AllocationController, NavCalculator
from .safe_math import format_amount
from .storage import TTL_POLICY, DataKey, StateStore, retention_of
from .strategies import StrategyRegistry

SEVERITY_ICON = {
    "ok": "✅",
    "warn": "⚠️",
    "error": "❌",
    "info": "ℹ️",
}


@dataclass
class StatusItem:
    label: str
    value: str
    severity: str = "info"
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        payload = asdict(self)
        return {k: v for k, v in payload.items() if v is not None}


Sections = List[Tuple[str, List[StatusItem]]]


def _lifecycle_status(store: StateStore, config: Optional[VaultConfig]) -> List[StatusItem]:
    gate = LifecycleGate(store.clock)
    phase = gate.phase(config)
    if config is None:
        return [StatusItem("Phase", phase.value, "warn", "run initialize first")]

    items = [StatusItem("Phase", phase.value, "ok")]
    if phase is Phase.ACTIVE:
        days = gate.seconds_to_maturity(config) / 86400
        items.append(StatusItem("Maturity", f"{config.maturity_timestamp} (in {days:.1f} days)"))
    else:
        items.append(
            StatusItem("Maturity", str(config.maturity_timestamp), "info", "redeem and claim are open")
        )
    items.append(StatusItem("Buyback price", format_amount(config.buyback_price)))
    items.append(StatusItem("Admin", config.admin))
    items.append(StatusItem("Oracle", config.oracle))
    return items


def _accounting_status(store: StateStore, config: Optional[VaultConfig]) -> List[StatusItem]:
    if config is None:
        return []
    nav = NavCalculator(store, StrategyRegistry(), "cached")
    rwa = nav.rwa_value()
    items = [
        StatusItem("NAV", format_amount(nav.vault_value()), "ok"),
        StatusItem(
            "RWA valuation",
            format_amount(rwa),
            "error" if rwa < 0 else "info",
            "oracle reported a negative value" if rwa < 0 else None,
        ),
        StatusItem("Total deposits", format_amount(int(store.get(DataKey.TOTAL_DEPOSITS, 0)))),
    ]

    rwa_bps, onchain_bps = AllocationController().ratio(config)
    items.append(StatusItem("Allocation", f"{rwa_bps / 100:.2f}% RWA / {onchain_bps / 100:.2f}% on-chain"))

    whitelist = nav.whitelist()
    if not whitelist:
        items.append(StatusItem("Strategies", "none whitelisted"))
    for address in whitelist:
        key = DataKey.strategy_position(address)
        if store.is_archived(key):
            items.append(StatusItem(f"Strategy {address}", "position archived", "error", "run maintain --restore"))
            continue
        position: StrategyPosition = store.get(key, StrategyPosition())
        items.append(
            StatusItem(
                f"Strategy {address}",
                f"deployed {format_amount(position.deployed)} "
                f"(in {format_amount(position.total_transferred)}, out {format_amount(position.total_returned)})",
            )
        )
    return items


def _retention_status(store: StateStore) -> List[StatusItem]:
    archived = 0
    expiring = 0
    for key in store.keys():
        remaining = store.ttl(key)
        if remaining is None:
            continue
        if remaining < 0:
            archived += 1
        elif remaining < TTL_POLICY[retention_of(key)][0]:
            expiring += 1

    items = [StatusItem("Entries", str(len(store.keys())))]
    items.append(
        StatusItem(
            "Below threshold",
            str(expiring),
            "warn" if expiring else "ok",
            "run maintain" if expiring else None,
        )
    )
    items.append(
        StatusItem(
            "Archived",
            str(archived),
            "error" if archived else "ok",
            "run maintain --restore" if archived else None,
        )
    )
    config_ttl = store.ttl(DataKey.CONFIG)
    if config_ttl is not None:
        items.append(StatusItem("Config TTL", f"{config_ttl / DAY_IN_LEDGERS:.1f} days"))
    return items


def collect_sections(store: StateStore) -> Sections:
    config = store.peek(DataKey.CONFIG)
    try:
        accounting = _accounting_status(store, config)
    except EntryArchived as exc:
        accounting = [StatusItem("State", str(exc), "error", "run maintain --restore")]
    return [
        ("Lifecycle", _lifecycle_status(store, config)),
        ("Accounting", accounting),
        ("Retention", _retention_status(store)),
    ]


def sections_to_json(sections: Sections) -> Dict[str, List[Dict[str, object]]]:
    return {title.lower(): [item.to_dict() for item in items] for title, items in sections}


def print_sections(sections: Sections) -> None:
    for title, rows in sections:
        print(f"=== {title} ===")
        for item in rows:
            icon = SEVERITY_ICON.get(item.severity, "•")
            line = f"{icon} {item.label}: {item.value}"
            if item.hint:
                line += f" ({item.hint})"
            print(line)
        print()
