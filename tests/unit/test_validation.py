"""
Unit tests for input validation helpers.
"""

from decimal import Decimal

import pytest

from commission_engine.utils.exceptions import InvalidInputError
from commission_engine.utils.validation import (
    MAX_AMOUNT,
    normalize_amount,
    normalize_sale_reference,
    quantize_money,
    sanitize_input,
    validate_referral_code,
)


class TestAmounts:
    """Test money normalization."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("0.005", "0.01"),
            ("0.004", "0.00"),
            ("2.345", "2.35"),
            ("-2.345", "-2.35"),
        ],
    )
    def test_quantize_rounds_half_up(self, raw, expected):
        """Amounts round half up to cents."""
        assert quantize_money(Decimal(raw)) == Decimal(expected)

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (10, "10.00"),
            ("99.999", "100.00"),
            (Decimal("0.01"), "0.01"),
            (12.5, "12.50"),
            (MAX_AMOUNT, str(MAX_AMOUNT)),
        ],
    )
    def test_normalize_amount(self, raw, expected):
        """Valid amounts are returned as cents."""
        assert normalize_amount(raw) == Decimal(expected)

    @pytest.mark.parametrize(
        "raw",
        [0, "0.004", -1, "abc", "NaN", "-Infinity", True, None, "1e20"],
    )
    def test_normalize_amount_rejects(self, raw):
        """Non-positive, non-finite and oversized amounts are rejected."""
        with pytest.raises(InvalidInputError):
            normalize_amount(raw)


class TestSaleReference:
    """Test sale reference validation."""

    def test_strips_whitespace(self):
        """References are stripped."""
        assert normalize_sale_reference("  INV-1 ") == "INV-1"

    @pytest.mark.parametrize("raw", [None, "", "   ", "x" * 256, 123])
    def test_rejects(self, raw):
        """Missing and oversized references are rejected."""
        with pytest.raises(InvalidInputError):
            normalize_sale_reference(raw)


class TestReferralCode:
    """Test referral code format."""

    @pytest.mark.parametrize("code", ["A1B2C3D4E5F6", "abcdef", " 00ff00 "])
    def test_valid(self, code):
        """Hex codes of 6-20 characters are valid in any case."""
        assert validate_referral_code(code) is True

    @pytest.mark.parametrize("code", ["", None, "ABC", "XYZXYZ", "A" * 21])
    def test_invalid(self, code):
        """Short, long and non-hex codes are invalid."""
        assert validate_referral_code(code) is False


def test_sanitize_input():
    """Null bytes are removed and text is truncated."""
    assert sanitize_input(None) is None
    assert sanitize_input("   ") is None
    assert sanitize_input(" a\x00b ") == "ab"
    assert sanitize_input("abcdef", max_length=3) == "abc"
