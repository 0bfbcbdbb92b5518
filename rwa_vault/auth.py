#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Authorization guard: operation-scoped EIP-191 proofs with replay nonces.

A proof is a signature over the canonical message::

    rwa-vault:<vault_id>:<operation>:<nonce>:<arg1>|<arg2>|...

The nonce must equal the principal's stored nonce. It is bumped inside the
operation's transaction, so a rejected operation leaves the proof valid and a
committed one can never be replayed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence, Type, Union

from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from .constants import AUTH_DOMAIN
from .errors import AuthorizationError, InvalidAddress, NotAuthorized
from .input_validation import normalize_address
from .storage import DataKey, StateStore


@dataclass(frozen=True)
class AuthProof:
    signer: str
    nonce: int
    signature: Union[bytes, str]


def _format_arg(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str) and Web3.is_address(value):
        return Web3.to_checksum_address(value)
    return str(value)


def operation_message(vault_id: str, operation: str, nonce: int, args: Sequence[Any]) -> str:
    body = "|".join(_format_arg(a) for a in args)
    return f"{AUTH_DOMAIN}:{vault_id}:{operation}:{nonce}:{body}"


def sign_operation(account, vault_id: str, operation: str, args: Sequence[Any], nonce: int) -> AuthProof:
    """
    Produce an authorization proof for an operation.

    Args:
        account: eth_account LocalAccount of the acting principal
        vault_id: Identifier of the vault instance
        operation: Operation name (e.g. "deposit")
        args: Operation arguments after the principal, in call order
        nonce: Principal's current nonce (see ``Vault.get_nonce``)

    Returns:
        AuthProof to pass to the vault operation
    """
    message = encode_defunct(text=operation_message(vault_id, operation, nonce, args))
    signed = account.sign_message(message)
    return AuthProof(signer=account.address, nonce=nonce, signature=bytes(signed.signature))


class AuthorizationGuard:
    """Verifies that the caller is exactly the principal an operation requires."""

    def __init__(self, vault_id: str, store: StateStore):
        self.vault_id = vault_id
        self.store = store

    def nonce_of(self, principal: str) -> int:
        key = DataKey.nonce(principal)
        self.store.restore(key)
        return int(self.store.get(key, 0))

    def require(
        self,
        principal: str,
        proof: AuthProof,
        operation: str,
        args: Sequence[Any],
        error: Type[AuthorizationError] = NotAuthorized,
    ) -> str:
        """
        Check the proof and consume the principal's nonce.

        Returns:
            The checksummed principal

        Raises:
            NotAuthorized (or ``error``): On any mismatch
        """
        if proof is None:
            raise error(f"{operation}: missing authorization proof")
        try:
            principal = normalize_address(principal)
            signer = normalize_address(proof.signer)
        except InvalidAddress as exc:
            raise error(f"{operation}: {exc}") from exc
        if signer != principal:
            raise error(f"{operation}: proof signed for {signer}, requires {principal}")

        expected = self.nonce_of(principal)
        if proof.nonce != expected:
            raise error(f"{operation}: stale nonce {proof.nonce}, expected {expected}")

        message = encode_defunct(text=operation_message(self.vault_id, operation, proof.nonce, args))
        try:
            recovered = Account.recover_message(message, signature=proof.signature)
        except Exception as exc:
            raise error(f"{operation}: unreadable signature") from exc
        if recovered != principal:
            raise error(f"{operation}: signature does not match {principal}")

        key = DataKey.nonce(principal)
        self.store.set(key, expected + 1)
        self.store.extend_ttl(key)
        return principal
