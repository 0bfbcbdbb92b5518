#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Background retention job.

Per-principal entries (balances, claims, positions, nonces) are only
extended when touched by an operation, so a holder who stays idle past the
persistent lifetime would see their entries archived. This job sweeps every
known entry and extends those close to expiry. It is idempotent, safe to run
at-least-once, and never changes a stored value.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Optional

from .clock import LedgerClock, SystemClock
from .config import VaultSettings
from .logging_config import get_logger
from .retry_policy import RetryConfig, retry_with_backoff
from .run_lock import RunLock
from .storage import Retention, StateStore

logger = get_logger(__name__)


@dataclass
class MaintenanceReport:
    checked: int = 0
    extended: int = 0
    archived: int = 0
    restored: int = 0
    ledger: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def extend_retention(store: StateStore, restore_archived: bool = False) -> MaintenanceReport:
    """
    Extend every entry whose remaining lifetime is under its class threshold.

    Args:
        store: State store to sweep
        restore_archived: Also bring archived entries back with a fresh TTL

    Returns:
        MaintenanceReport with per-run counters
    """
    report = MaintenanceReport(ledger=store.clock.sequence())
    # A sweep that fails part way leaves every TTL as it was
    with store.transaction():
        for retention in (Retention.INSTANCE, Retention.PERSISTENT):
            for key in store.keys(retention):
                report.checked += 1
                if store.is_archived(key):
                    if restore_archived and store.restore(key):
                        report.restored += 1
                    else:
                        report.archived += 1
                    continue
                if store.extend_ttl(key):
                    report.extended += 1

    if report.archived:
        logger.warning("archived entries left in place", extra={"archived": report.archived})
    logger.info("retention sweep complete", extra=report.to_dict())
    return report


def run_maintenance(
    settings: Optional[VaultSettings] = None,
    clock: Optional[LedgerClock] = None,
    restore_archived: bool = False,
) -> MaintenanceReport:
    """
    Load the state file, sweep it and save it back under the run-lock.

    Raises:
        RunLockError: Another maintenance run holds the lock
    """
    settings = settings or VaultSettings.from_env()
    clock = clock or SystemClock()
    retry = RetryConfig.from_settings(settings)

    with RunLock(settings.maintenance_lock, timeout_seconds=settings.lock_timeout_s):
        store = retry_with_backoff(StateStore.load, settings.state_path, clock, config=retry)
        report = extend_retention(store, restore_archived=restore_archived)
        retry_with_backoff(store.save, settings.state_path, config=retry)
    return report
