"""
Tests for exact amount conversion.
"""
from __future__ import annotations

from decimal import Decimal

import pytest

from wallet_assistant_ai.errors import InvalidAmountError
from wallet_assistant_ai.wallet.units import (
    NATIVE_DECIMALS,
    format_amount,
    from_smallest_unit,
    to_decimal,
    to_smallest_unit,
)


class TestToSmallestUnit:
    """Tests for to_smallest_unit."""

    @pytest.mark.parametrize(
        "value, decimals, expected",
        [
            ("1.5", 6, 1_500_000),
            ("5", 18, 5 * 10**18),
            ("0.001", 18, 10**15),
            ("0.000001", 6, 1),
            (Decimal("1.500000"), 6, 1_500_000),
            ("1e-6", 6, 1),
            (3, 0, 3),
            ("0", 6, 0),
        ],
    )
    def test_exact_values(self, value, decimals, expected):
        assert to_smallest_unit(value, decimals) == expected

    def test_wei_precision_is_kept(self):
        assert to_smallest_unit("0.123456789012345678", NATIVE_DECIMALS) == 123456789012345678

    def test_sub_unit_precision_rejected(self):
        with pytest.raises(InvalidAmountError):
            to_smallest_unit("0.0000001", 6)

    def test_negative_rejected(self):
        with pytest.raises(InvalidAmountError):
            to_smallest_unit("-1", 6)

    @pytest.mark.parametrize("value", ["abc", "", "NaN", "Infinity"])
    def test_non_numbers_rejected(self, value):
        with pytest.raises(InvalidAmountError):
            to_smallest_unit(value, 6)

    def test_float_rejected(self):
        with pytest.raises(InvalidAmountError):
            to_decimal(0.1)

    @pytest.mark.parametrize("value", ["1e999999999", "1e60", Decimal("1E+9999")])
    def test_oversized_rejected(self, value):
        with pytest.raises(InvalidAmountError, match="too large"):
            to_smallest_unit(value, NATIVE_DECIMALS)

    def test_largest_uint256_accepted(self):
        top = 2**256 - 1
        assert to_smallest_unit(Decimal(top), 0) == top

    def test_tiny_exponent_rejected(self):
        with pytest.raises(InvalidAmountError, match="decimal places"):
            to_smallest_unit("1e-999999999", 6)

    def test_zero_with_exponent(self):
        assert to_smallest_unit("0e999999999", 18) == 0


class TestFromSmallestUnit:
    """Tests for from_smallest_unit and format_amount."""

    def test_exact_result(self):
        assert from_smallest_unit(1_500_000, 6) == Decimal("1.5")
        assert str(from_smallest_unit(10 * 10**18, 18)) == "10"
        assert from_smallest_unit(1, 18) == Decimal("1E-18")

    def test_large_balance_not_rounded(self):
        value = 123456789012345678901234567890
        assert to_smallest_unit(from_smallest_unit(value, 18), 18) == value

    def test_format_truncates(self):
        assert format_amount(Decimal("1.23456789")) == "1.2345"
        assert format_amount(Decimal("10")) == "10.0000"
        assert format_amount(Decimal("0.99999"), places=2) == "0.99"

    def test_format_huge_balance(self):
        whole, fraction = divmod(2**256 - 1, 10**6)
        balance = from_smallest_unit(2**256 - 1, 6)
        assert format_amount(balance) == f"{whole}.{fraction:06d}"[:-2]
