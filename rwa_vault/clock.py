#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Ledger time sources: wall-clock timestamp and ledger sequence number."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Optional

from .constants import SECONDS_PER_LEDGER


class LedgerClock(ABC):
    """Execution-environment clock consumed by the lifecycle gate and TTLs."""

    @abstractmethod
    def timestamp(self) -> int:
        """Current ledger close time in seconds."""

    @abstractmethod
    def sequence(self) -> int:
        """Current ledger number."""


class SystemClock(LedgerClock):
    """Wall clock; the sequence advances one ledger every 5 seconds."""

    def timestamp(self) -> int:
        return int(time.time())

    def sequence(self) -> int:
        return self.timestamp() // SECONDS_PER_LEDGER


class ManualClock(LedgerClock):
    """Settable clock for tests and simulations.

    Advancing time advances the sequence proportionally unless a sequence is
    pinned explicitly.
    """

    def __init__(self, timestamp: int = 1_700_000_000, sequence: Optional[int] = None):
        self._timestamp = int(timestamp)
        self._sequence = int(sequence) if sequence is not None else self._timestamp // SECONDS_PER_LEDGER

    def timestamp(self) -> int:
        return self._timestamp

    def sequence(self) -> int:
        return self._sequence

    def advance(self, seconds: int) -> None:
        self._timestamp += int(seconds)
        self._sequence += int(seconds) // SECONDS_PER_LEDGER

    def advance_ledgers(self, ledgers: int) -> None:
        self._sequence += int(ledgers)
        self._timestamp += int(ledgers) * SECONDS_PER_LEDGER

    def set(self, timestamp: int) -> None:
        self.advance(int(timestamp) - self._timestamp)
