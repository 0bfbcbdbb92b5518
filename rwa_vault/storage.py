#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Durable keyed state store with two retention classes.

Configuration entries live in the ``INSTANCE`` class and are extended on
every operation. Per-principal entries live in the ``PERSISTENT`` class and
require periodic explicit extension; once an entry's ``live_until`` ledger
has passed it is archived and reads fail with :class:`EntryArchived` until it
is restored.

Keys are tuples whose first element is the entry kind, e.g.
``("UserBalance", "0xAbc...")``.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .clock import LedgerClock
from .constants import (
    INSTANCE_BUMP_AMOUNT,
    INSTANCE_LIFETIME_THRESHOLD,
    PERSISTENT_BUMP_AMOUNT,
    PERSISTENT_LIFETIME_THRESHOLD,
)
from .errors import EntryArchived, StorageError
from .models import MODEL_TYPES

Key = Tuple[str, ...]


class Retention(str, Enum):
    INSTANCE = "instance"
    PERSISTENT = "persistent"


RETENTION_BY_KIND: Dict[str, Retention] = {
    "Config": Retention.INSTANCE,
    "RwaValue": Retention.INSTANCE,
    "TotalDeposits": Retention.INSTANCE,
    "Strategies": Retention.INSTANCE,
    "UserBalance": Retention.PERSISTENT,
    "Claim": Retention.PERSISTENT,
    "ClaimHistory": Retention.PERSISTENT,
    "StrategyPos": Retention.PERSISTENT,
    "Nonce": Retention.PERSISTENT,
}

TTL_POLICY: Dict[Retention, Tuple[int, int]] = {
    Retention.INSTANCE: (INSTANCE_LIFETIME_THRESHOLD, INSTANCE_BUMP_AMOUNT),
    Retention.PERSISTENT: (PERSISTENT_LIFETIME_THRESHOLD, PERSISTENT_BUMP_AMOUNT),
}


class DataKey:
    """Builders for every key the vault writes."""

    CONFIG: Key = ("Config",)
    RWA_VALUE: Key = ("RwaValue",)
    TOTAL_DEPOSITS: Key = ("TotalDeposits",)
    STRATEGIES: Key = ("Strategies",)

    @staticmethod
    def user_balance(user: str) -> Key:
        return ("UserBalance", user)

    @staticmethod
    def claim(user: str) -> Key:
        return ("Claim", user)

    @staticmethod
    def claim_history(user: str) -> Key:
        return ("ClaimHistory", user)

    @staticmethod
    def strategy_position(strategy: str) -> Key:
        return ("StrategyPos", strategy)

    @staticmethod
    def nonce(principal: str) -> Key:
        return ("Nonce", principal)


def retention_of(key: Key) -> Retention:
    try:
        return RETENTION_BY_KIND[key[0]]
    except (KeyError, IndexError) as exc:
        raise StorageError(f"unknown key kind: {key!r}") from exc


@dataclass(frozen=True)
class Entry:
    value: Any
    live_until: int


# === JSON codec =============================================================

def _encode_value(value: Any) -> Any:
    if isinstance(value, bool) or value is None or isinstance(value, (int, str)):
        return value
    if isinstance(value, (bytes, bytearray)):
        return {"__bytes__": bytes(value).hex()}
    if isinstance(value, (list, tuple)):
        return {"__tuple__": [_encode_value(v) for v in value]}
    model_name = type(value).__name__
    if model_name in MODEL_TYPES:
        return {"__model__": model_name, "data": value.to_dict()}
    raise StorageError(f"cannot persist value of type {model_name}")


def _decode_value(raw: Any) -> Any:
    if isinstance(raw, dict):
        if "__bytes__" in raw:
            return bytes.fromhex(raw["__bytes__"])
        if "__tuple__" in raw:
            return tuple(_decode_value(v) for v in raw["__tuple__"])
        if "__model__" in raw:
            cls = MODEL_TYPES.get(raw["__model__"])
            if cls is None:
                raise StorageError(f"unknown model {raw['__model__']}")
            return cls.from_dict(raw["data"])
        raise StorageError("malformed stored value")
    return raw


class StateStore:
    """In-process keyed store with TTL bookkeeping and rollback support."""

    def __init__(self, clock: LedgerClock):
        self.clock = clock
        self._entries: Dict[Key, Entry] = {}

    # Reads --------------------------------------------------------------
    def has(self, key: Key) -> bool:
        return key in self._entries

    def is_archived(self, key: Key) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.live_until < self.clock.sequence()

    def get(self, key: Key, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        if entry.live_until < self.clock.sequence():
            raise EntryArchived(f"{key[0]} entry archived at ledger {entry.live_until}")
        return entry.value

    def peek(self, key: Key, default: Any = None) -> Any:
        """Stored value regardless of archival; for maintenance and inspection only."""
        entry = self._entries.get(key)
        return default if entry is None else entry.value

    def ttl(self, key: Key) -> Optional[int]:
        """Ledgers remaining before archival (negative once archived)."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        return entry.live_until - self.clock.sequence()

    def keys(self, retention: Optional[Retention] = None) -> List[Key]:
        if retention is None:
            return list(self._entries)
        return [key for key in self._entries if retention_of(key) is retention]

    # Writes -------------------------------------------------------------
    def set(self, key: Key, value: Any) -> None:
        retention = retention_of(key)
        entry = self._entries.get(key)
        if entry is None:
            _, bump = TTL_POLICY[retention]
            live_until = self.clock.sequence() + bump
        else:
            if entry.live_until < self.clock.sequence():
                raise EntryArchived(f"{key[0]} entry archived at ledger {entry.live_until}")
            live_until = entry.live_until
        self._entries[key] = Entry(value=value, live_until=live_until)

    def extend_ttl(self, key: Key, threshold: Optional[int] = None, extend_to: Optional[int] = None) -> bool:
        """
        Extend an entry's TTL when fewer than ``threshold`` ledgers remain.

        Args:
            key: Entry key
            threshold: Remaining-ledger threshold (class default if None)
            extend_to: New remaining lifetime (class default if None)

        Returns:
            True if the TTL was extended
        """
        entry = self._entries.get(key)
        if entry is None:
            return False
        seq = self.clock.sequence()
        if entry.live_until < seq:
            raise EntryArchived(f"{key[0]} entry archived at ledger {entry.live_until}")
        default_threshold, default_bump = TTL_POLICY[retention_of(key)]
        threshold = default_threshold if threshold is None else threshold
        extend_to = default_bump if extend_to is None else extend_to
        if entry.live_until - seq >= threshold:
            return False
        self._entries[key] = Entry(value=entry.value, live_until=seq + extend_to)
        return True

    def extend_instance(self) -> None:
        for key in self.keys(Retention.INSTANCE):
            self.extend_ttl(key)

    def restore(self, key: Key) -> bool:
        """Bring an archived entry back with a fresh TTL."""
        entry = self._entries.get(key)
        if entry is None or entry.live_until >= self.clock.sequence():
            return False
        _, bump = TTL_POLICY[retention_of(key)]
        self._entries[key] = Entry(value=entry.value, live_until=self.clock.sequence() + bump)
        return True

    # Atomicity ----------------------------------------------------------
    def snapshot(self) -> Dict[Key, Entry]:
        # Entries and stored values are immutable, a shallow copy suffices
        return dict(self._entries)

    def restore_snapshot(self, snapshot: Dict[Key, Entry]) -> None:
        self._entries = dict(snapshot)

    @contextmanager
    def transaction(self) -> Iterator["StateStore"]:
        snapshot = self.snapshot()
        try:
            yield self
        except BaseException:
            self.restore_snapshot(snapshot)
            raise

    # Persistence --------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [
                {
                    "key": list(key),
                    "live_until": entry.live_until,
                    "value": _encode_value(entry.value),
                }
                for key, entry in self._entries.items()
            ]
        }

    def save(self, path: Path) -> None:
        """Save state to file (written to a temp file then renamed)."""
        path = Path(path)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(json.dumps(self.to_dict(), indent=2))
        tmp.replace(path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], clock: LedgerClock) -> "StateStore":
        store = cls(clock)
        for raw in data.get("entries", []):
            key = tuple(raw["key"])
            retention_of(key)
            store._entries[key] = Entry(
                value=_decode_value(raw["value"]),
                live_until=int(raw["live_until"]),
            )
        return store

    @classmethod
    def load(cls, path: Path, clock: LedgerClock) -> "StateStore":
        """Load state from file; a missing file yields an empty store."""
        path = Path(path)
        if not path.exists():
            return cls(clock)
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as exc:
            raise StorageError(f"corrupt state file {path}: {exc}") from exc
        return cls.from_dict(data, clock)
