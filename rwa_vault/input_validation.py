#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Input validation for principals, amounts and claim payloads."""

from __future__ import annotations

from typing import Union

from web3 import Web3

from .constants import BASIS_POINTS_PER_UNIT, DELIVERY_HASH_LENGTH
from .errors import InvalidAddress, InvalidAllocation, InvalidDeliveryHash, ZeroAmount
from .safe_math import check_i128


def validate_ethereum_address(address: str) -> bool:
    """Validate address format (any case accepted).

    Args:
        address: Address string to validate

    Returns:
        True if the string is a 20-byte hex address, False otherwise
    """
    if not address or not isinstance(address, str):
        return False
    try:
        return bool(Web3.is_address(address))
    except Exception:
        return False


def normalize_address(address: str) -> str:
    """
    Return the EIP-55 checksummed form of an address.

    Raises:
        InvalidAddress: If the address is malformed
    """
    if not validate_ethereum_address(address):
        raise InvalidAddress(f"invalid address: {sanitize_string_for_log(str(address), 64)}")
    return Web3.to_checksum_address(address)


def require_positive_amount(amount: int, what: str = "amount") -> int:
    """Amounts must be i128 integers strictly greater than zero."""
    check_i128(amount, what)
    if amount <= 0:
        raise ZeroAmount(f"{what} must be > 0, got {amount}")
    return amount


def validate_allocation(rwa_bps: int, onchain_bps: int) -> None:
    """Both ratios must be non-negative integers summing to 10000."""
    for value in (rwa_bps, onchain_bps):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidAllocation(f"invalid basis points: {value!r}")
    if rwa_bps + onchain_bps != BASIS_POINTS_PER_UNIT:
        raise InvalidAllocation(
            f"allocation must sum to {BASIS_POINTS_PER_UNIT} bps, got {rwa_bps + onchain_bps}"
        )


def parse_delivery_hash(value: Union[bytes, bytearray, str]) -> bytes:
    """
    Parse a delivery hash into its 32 raw bytes.

    Accepts raw bytes or a hex string (with or without ``0x``). The all-zero
    digest is rejected since it commits to nothing.

    Raises:
        InvalidDeliveryHash: If the value is not a well-formed 32-byte digest
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        text = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            raw = bytes.fromhex(text)
        except ValueError as exc:
            raise InvalidDeliveryHash("delivery hash is not hex") from exc
    else:
        raise InvalidDeliveryHash(f"unsupported delivery hash type: {type(value).__name__}")

    if len(raw) != DELIVERY_HASH_LENGTH:
        raise InvalidDeliveryHash(
            f"delivery hash must be {DELIVERY_HASH_LENGTH} bytes, got {len(raw)}"
        )
    if not any(raw):
        raise InvalidDeliveryHash("delivery hash is all zeros")
    return raw


def delivery_hash(details: Union[bytes, str]) -> bytes:
    """Keccak-256 commitment over (already encrypted) delivery details."""
    if isinstance(details, str):
        details = details.encode("utf-8")
    return bytes(Web3.keccak(details))


def sanitize_string_for_log(text: str, max_length: int = 1000) -> str:
    """Sanitize string for safe logging by removing control characters.

    Args:
        text: String to sanitize
        max_length: Maximum length to keep

    Returns:
        Sanitized string safe for logging
    """
    if not isinstance(text, str):
        text = str(text)

    sanitized = "".join(c for c in text if c.isprintable())

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "...(truncated)"

    return sanitized
