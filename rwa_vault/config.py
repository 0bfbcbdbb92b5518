#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Runtime settings for the vault engine, loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .constants import (
    DEFAULT_LOCK_FILE,
    DEFAULT_LOCK_TIMEOUT_S,
    DEFAULT_STATE_FILE,
    DEFAULT_WEBHOOK_TIMEOUT,
)

NAV_SOURCES = {"cached", "live"}


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass
class VaultSettings:
    """Operational knobs that do not belong in on-ledger configuration."""

    state_path: Path = Path(DEFAULT_STATE_FILE)
    # "cached" sums recorded deployed amounts, "live" asks each strategy
    nav_source: str = "cached"
    enforce_redeem_liquidity: bool = True
    event_webhook: Optional[str] = None
    webhook_timeout: float = float(DEFAULT_WEBHOOK_TIMEOUT)
    maintenance_lock: Path = Path(DEFAULT_LOCK_FILE)
    lock_timeout_s: int = DEFAULT_LOCK_TIMEOUT_S
    retry_max_attempts: int = 3
    retry_initial_delay: float = 0.5

    def __post_init__(self) -> None:
        if self.nav_source not in NAV_SOURCES:
            self.nav_source = "cached"
        self.retry_max_attempts = max(1, self.retry_max_attempts)
        self.retry_initial_delay = max(0.0, self.retry_initial_delay)

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "VaultSettings":
        """Load settings from environment variables (and ``.env`` if present)."""
        if dotenv:
            load_dotenv()
        webhook = (os.getenv("RWA_VAULT_EVENT_WEBHOOK") or "").strip() or None
        return cls(
            state_path=Path(os.getenv("RWA_VAULT_STATE_PATH", DEFAULT_STATE_FILE)),
            nav_source=os.getenv("RWA_VAULT_NAV_SOURCE", "cached").strip().lower(),
            enforce_redeem_liquidity=_env_flag("RWA_VAULT_ENFORCE_LIQUIDITY", True),
            event_webhook=webhook,
            webhook_timeout=_float_env("RWA_VAULT_WEBHOOK_TIMEOUT", float(DEFAULT_WEBHOOK_TIMEOUT)),
            maintenance_lock=Path(os.getenv("RWA_VAULT_MAINTENANCE_LOCK", DEFAULT_LOCK_FILE)),
            lock_timeout_s=_int_env("RWA_VAULT_LOCK_TIMEOUT", DEFAULT_LOCK_TIMEOUT_S),
            retry_max_attempts=_int_env("RWA_VAULT_RETRY_MAX_ATTEMPTS", 3),
            retry_initial_delay=_float_env("RWA_VAULT_RETRY_INITIAL_DELAY", 0.5),
        )
