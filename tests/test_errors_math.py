"""Error codes and checked integer arithmetic."""

import pytest

from rwa_vault.constants import I128_MAX, I128_MIN
from rwa_vault.errors import (
    ERROR_CODES,
    AccountingError,
    ArithmeticOverflow,
    InsufficientBalance,
    InsufficientDeployed,
    InvalidAddress,
    InvalidAllocation,
    VaultAlreadyMature,
    VaultError,
    VaultInsolvent,
    error_from_code,
)
from rwa_vault.input_validation import (
    normalize_address,
    parse_delivery_hash,
    validate_allocation,
)
from rwa_vault.safe_math import (
    check_i128,
    checked_add,
    checked_mul,
    format_amount,
    mul_div_floor,
    payout_for_redeem,
    shares_for_deposit,
)


def test_error_codes_are_stable_and_contiguous():
    assert list(ERROR_CODES) == list(range(1, len(ERROR_CODES) + 1))
    assert ERROR_CODES[6] is VaultAlreadyMature
    assert ERROR_CODES[14] is VaultInsolvent


def test_error_from_code_rebuilds_typed_error():
    err = error_from_code(21, "short")
    assert isinstance(err, InsufficientDeployed)
    assert isinstance(err, InsufficientBalance)
    assert isinstance(err, AccountingError)
    assert str(err) == "short"
    assert err.name == "InsufficientDeployed"

    unknown = error_from_code(999)
    assert type(unknown) is VaultError
    assert unknown.code == 999


def test_default_message_is_error_name():
    assert str(VaultInsolvent()) == "VaultInsolvent"


def test_i128_bounds():
    assert check_i128(I128_MAX) == I128_MAX
    assert check_i128(I128_MIN) == I128_MIN
    with pytest.raises(ArithmeticOverflow):
        check_i128(I128_MAX + 1)
    with pytest.raises(ArithmeticOverflow):
        checked_add(I128_MAX, 1)
    with pytest.raises(ArithmeticOverflow):
        checked_mul(2**64, 2**64)


def test_non_integers_rejected():
    for value in (True, 1.0, "1", None):
        with pytest.raises(ArithmeticOverflow):
            check_i128(value)


def test_mul_div_floors():
    assert mul_div_floor(7, 10, 3) == 23
    assert mul_div_floor(-7, 10, 3) == -24
    with pytest.raises(VaultInsolvent):
        mul_div_floor(1, 1, 0)


def test_share_pricing():
    assert shares_for_deposit(500, 0, 0) == 500
    assert shares_for_deposit(100, 1_000, 3_000) == 33
    with pytest.raises(VaultInsolvent):
        shares_for_deposit(100, 1_000, 0)

    assert payout_for_redeem(100, 1_000, 3_000) == 300
    assert payout_for_redeem(1, 3, 2) == 0
    with pytest.raises(VaultInsolvent):
        payout_for_redeem(1, 0, 100)


def test_intermediate_overflow_detected():
    with pytest.raises(ArithmeticOverflow):
        shares_for_deposit(I128_MAX // 2, I128_MAX // 2, 10)


def test_format_amount():
    assert format_amount(12_345_678_900) == "1,234.57"
    assert format_amount(5, decimals=0, precision=0) == "5"


def test_address_normalization():
    lower = "0x" + "ab" * 20
    assert normalize_address(lower) == normalize_address(lower.upper().replace("0X", "0x"))
    with pytest.raises(InvalidAddress):
        normalize_address("0x1234")


def test_allocation_validation():
    validate_allocation(0, 10_000)
    with pytest.raises(InvalidAllocation):
        validate_allocation(-1, 10_001)
    with pytest.raises(InvalidAllocation):
        validate_allocation(True, 9_999)


def test_delivery_hash_hex_prefix_optional():
    raw = bytes(range(1, 33))
    assert parse_delivery_hash(raw.hex()) == raw
    assert parse_delivery_hash("0x" + raw.hex()) == raw
