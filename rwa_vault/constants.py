#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Global constants for the RWA maturity vault.

This module centralizes every magic number used by the ledger engine so the
arithmetic bounds, retention windows and event topics stay consistent across
modules.
"""

# === Integer Bounds ===
# All monetary quantities are signed 128-bit integers
I128_MIN = -(1 << 127)
I128_MAX = (1 << 127) - 1

# === Allocation ===
# Basis points per unit (10000 bps = 100%)
BASIS_POINTS_PER_UNIT = 10000

# === Ledger Time ===
SECONDS_PER_LEDGER = 5
SECONDS_PER_DAY = 86400
DAY_IN_LEDGERS = SECONDS_PER_DAY // SECONDS_PER_LEDGER  # 17280

# === Retention (TTL) ===
# Configuration entries: extend to 30 days once fewer than 7 days remain
INSTANCE_LIFETIME_THRESHOLD = 7 * DAY_IN_LEDGERS
INSTANCE_BUMP_AMOUNT = 30 * DAY_IN_LEDGERS

# Per-principal entries: extend to 60 days once fewer than 30 days remain.
# The threshold is also the minimum retention window before archival risk.
PERSISTENT_LIFETIME_THRESHOLD = 30 * DAY_IN_LEDGERS
PERSISTENT_BUMP_AMOUNT = 60 * DAY_IN_LEDGERS

# === Claims ===
# Delivery hashes are 32-byte content digests
DELIVERY_HASH_LENGTH = 32

# === Authorization ===
# Prefix of every signed operation message
AUTH_DOMAIN = "rwa-vault"

# === Event Topics ===
TOPIC_INIT = "init"
TOPIC_DEPOSIT = "deposit"
TOPIC_REDEEM = "redeem"
TOPIC_CLAIM = "claim"
TOPIC_FULFILL = "fulfill"
TOPIC_ORACLE = "oracle"
TOPIC_SET_ORACLE = "set_orcl"
TOPIC_ALLOCATION = "alloc"
TOPIC_STRATEGY = "strategy"
TOPIC_DEPLOY = "deploy"
TOPIC_WITHDRAW = "withdraw"

# === HTTP ===
DEFAULT_WEBHOOK_TIMEOUT = 10

# === File & State Management ===
DEFAULT_STATE_FILE = "vault_state.json"
DEFAULT_LOCK_FILE = ".maintenance_lock"
DEFAULT_LOCK_TIMEOUT_S = 3600
