#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Checked signed 128-bit integer arithmetic for vault accounting.

No floating point is used anywhere in NAV or mint/burn arithmetic. Every
helper raises :class:`ArithmeticOverflow` instead of silently wrapping or
clamping.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from .constants import I128_MAX, I128_MIN
from .errors import ArithmeticOverflow, VaultInsolvent


def check_i128(value: int, what: str = "value") -> int:
    """
    Ensure an integer fits the signed 128-bit range.

    Args:
        value: Integer to check
        what: Label used in the error message

    Returns:
        The value unchanged
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ArithmeticOverflow(f"{what} must be an integer, got {type(value).__name__}")
    if value < I128_MIN or value > I128_MAX:
        raise ArithmeticOverflow(f"{what} outside i128 range")
    return value


def checked_add(a: int, b: int) -> int:
    return check_i128(check_i128(a) + check_i128(b), "sum")


def checked_sub(a: int, b: int) -> int:
    return check_i128(check_i128(a) - check_i128(b), "difference")


def checked_mul(a: int, b: int) -> int:
    return check_i128(check_i128(a) * check_i128(b), "product")


def checked_sum(values: Iterable[int]) -> int:
    total = 0
    for value in values:
        total = checked_add(total, value)
    return total


def mul_div_floor(a: int, b: int, denominator: int) -> int:
    """
    Compute ``floor(a * b / denominator)`` with an i128-checked product.

    Args:
        a: First factor
        b: Second factor
        denominator: Strictly positive divisor

    Returns:
        Floored quotient
    """
    if denominator <= 0:
        raise VaultInsolvent(f"non-positive denominator {denominator}")
    product = checked_mul(a, b)
    # Python's // floors toward negative infinity
    return check_i128(product // check_i128(denominator), "quotient")


def shares_for_deposit(amount: int, supply: int, nav: int) -> int:
    """Claim tokens minted for ``amount`` of stable asset.

    An empty vault mints 1:1. Otherwise ``floor(amount * supply / nav)``;
    a non-positive NAV with outstanding supply is an insolvent vault.
    """
    if supply == 0:
        return check_i128(amount, "amount")
    if nav <= 0:
        raise VaultInsolvent(f"nav={nav} with supply={supply}")
    return mul_div_floor(amount, supply, nav)


def payout_for_redeem(token_amount: int, supply: int, nav: int) -> int:
    """Stable asset paid for burning ``token_amount`` claim tokens."""
    if supply <= 0:
        raise VaultInsolvent("no claim tokens outstanding")
    if nav <= 0:
        raise VaultInsolvent(f"nav={nav} backs {supply} outstanding tokens")
    return mul_div_floor(token_amount, nav, supply)


def format_amount(amount: int, decimals: int = 7, precision: int = 2) -> str:
    """
    Format smallest-unit amount as human-readable string.

    Args:
        amount: Amount in smallest units
        decimals: Asset decimals
        precision: Decimal places to display

    Returns:
        Formatted string
    """
    scaled = Decimal(amount) / (Decimal(10) ** decimals)
    return f"{scaled:,.{precision}f}"
