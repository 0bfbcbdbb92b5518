"""Tokenized real-world-asset maturity vault."""

from .auth import AuthProof, sign_operation
from .clock import LedgerClock, ManualClock, SystemClock
from .config import VaultSettings
from .errors import ERROR_CODES, VaultError, error_from_code
from .events import EventLog, VaultEvent
from .ledgers import InMemoryTokenLedger
from .models import ClaimRecord, Phase, StrategyPosition, VaultConfig
from .storage import StateStore
from .strategies import SimulatedStrategy, StrategyRegistry
from .vault import Vault

__all__ = [
    "AuthProof",
    "ClaimRecord",
    "ERROR_CODES",
    "EventLog",
    "InMemoryTokenLedger",
    "LedgerClock",
    "ManualClock",
    "Phase",
    "SimulatedStrategy",
    "StateStore",
    "StrategyPosition",
    "StrategyRegistry",
    "SystemClock",
    "Vault",
    "VaultConfig",
    "VaultError",
    "VaultEvent",
    "VaultSettings",
    "error_from_code",
    "sign_operation",
]
