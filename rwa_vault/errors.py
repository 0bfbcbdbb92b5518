#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Typed vault errors with stable numeric codes.

Every failure surfaces as a subclass of :class:`VaultError`. The numeric code
is part of the public interface: wallets and services that only receive the
code can rebuild the typed error with :func:`error_from_code`.
"""

from __future__ import annotations

from typing import Dict, Optional, Type


class VaultError(Exception):
    """Base class for vault errors."""

    code: int = 0

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.name)

    @property
    def name(self) -> str:
        return type(self).__name__


# === Taxonomy =============================================================

class ConfigurationError(VaultError):
    """Vault configuration is missing or already present."""


class AuthorizationError(VaultError):
    """Caller identity does not match the required principal."""


class LifecycleError(VaultError):
    """Operation is inconsistent with the current vault phase."""


class ValidationError(VaultError):
    """Input rejected before any state was read for business logic."""


class AccountingError(VaultError):
    """Balances or deployed amounts do not allow the operation."""


class IdempotencyError(VaultError):
    """A record that must be unique already exists."""


class StorageError(VaultError):
    """State store entry unavailable."""


# === Concrete errors ======================================================

class AlreadyInitialized(ConfigurationError):
    code = 1


class NotInitialized(ConfigurationError):
    code = 2


class NotAuthorized(AuthorizationError):
    code = 3


class OracleNotAuthorized(AuthorizationError):
    code = 4


class VaultNotMature(LifecycleError):
    code = 5


class VaultAlreadyMature(LifecycleError):
    code = 6


class VaultLocked(LifecycleError):
    code = 7


class InvalidAllocation(ValidationError):
    code = 8


class ZeroAmount(ValidationError):
    code = 9


class InvalidDeliveryHash(ValidationError):
    code = 10


class InsufficientBalance(AccountingError):
    code = 11


class StrategyNotWhitelisted(AccountingError):
    code = 12


class ClaimAlreadyPending(IdempotencyError):
    code = 13


class VaultInsolvent(AccountingError):
    """NAV is zero or negative while claim tokens are outstanding."""

    code = 14


class InsufficientLiquidity(AccountingError):
    """Vault holds less stable asset than the redemption payout."""

    code = 15


class ArithmeticOverflow(ValidationError):
    """A value or intermediate product left the signed 128-bit range."""

    code = 16


class StrategyMismatch(AccountingError):
    """Strategy endpoint reported amounts inconsistent with the request."""

    code = 17


class EntryArchived(StorageError):
    code = 18


class ClaimNotFound(AccountingError):
    code = 19


class InvalidAddress(ValidationError):
    code = 20


class InsufficientDeployed(InsufficientBalance):
    """Withdrawal exceeds the amount recorded as deployed."""

    code = 21


class UnknownStrategy(ConfigurationError):
    """Whitelisted address has no endpoint bound in the registry."""

    code = 22


class TransactionReverted(VaultError):
    """An on-chain collaborator transaction failed or reverted."""

    code = 23

    def __init__(self, message: Optional[str] = None, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class ReentrantCall(AuthorizationError):
    """An operation was entered while another one is still running."""

    code = 24


def _collect(base: Type[VaultError]) -> Dict[int, Type[VaultError]]:
    found: Dict[int, Type[VaultError]] = {}
    for sub in base.__subclasses__():
        if sub.code:
            found[sub.code] = sub
        found.update(_collect(sub))
    return found


ERROR_CODES: Dict[int, Type[VaultError]] = dict(sorted(_collect(VaultError).items()))


def error_from_code(code: int, message: Optional[str] = None) -> VaultError:
    """
    Rebuild a typed error from its numeric code.

    Args:
        code: Stable error code
        message: Optional message to attach

    Returns:
        VaultError subclass instance (plain VaultError for unknown codes)
    """
    cls = ERROR_CODES.get(code)
    if cls is None:
        err = VaultError(message or f"Unknown vault error code: {code}")
        err.code = code
        return err
    return cls(message)
