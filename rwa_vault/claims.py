#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Claim ledger: physical-asset delivery obligations, one open record per user."""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Tuple

from .errors import ClaimAlreadyPending, ClaimNotFound
from .models import ClaimRecord
from .storage import DataKey, StateStore


class ClaimLedger:
    def __init__(self, store: StateStore):
        self.store = store

    def get(self, user: str) -> Optional[ClaimRecord]:
        return self.store.get(DataKey.claim(user))

    def history(self, user: str) -> Tuple[ClaimRecord, ...]:
        return tuple(self.store.get(DataKey.claim_history(user), ()))

    def ensure_none_pending(self, user: str) -> None:
        record = self.get(user)
        if record is not None and not record.fulfilled:
            raise ClaimAlreadyPending(f"claim of {record.amount} pending since {record.created_at}")

    def open(self, user: str, amount: int, delivery_hash: bytes, now: int) -> ClaimRecord:
        """Write a new unfulfilled record; a fulfilled predecessor moves to history."""
        self.ensure_none_pending(user)
        previous = self.get(user)
        if previous is not None:
            history_key = DataKey.claim_history(user)
            self.store.set(history_key, self.history(user) + (previous,))
            self.store.extend_ttl(history_key)
        record = ClaimRecord(amount=amount, delivery_hash=delivery_hash, created_at=now)
        key = DataKey.claim(user)
        self.store.set(key, record)
        self.store.extend_ttl(key)
        return record

    def fulfill(self, user: str) -> ClaimRecord:
        record = self.get(user)
        if record is None or record.fulfilled:
            raise ClaimNotFound(f"no pending claim for {user}")
        record = replace(record, fulfilled=True)
        key = DataKey.claim(user)
        self.store.set(key, record)
        self.store.extend_ttl(key)
        return record
