from decimal import Decimal

import pytest

from dexquote.core.errors import NumericOverflowError, ParseError
from dexquote.core.units import (
    UINT256_MAX, checked_uint, decimal_to_uint, format_units, parse_units, to_decimal,
)


@pytest.mark.parametrize("decimals", [0, 6, 8, 18])
def test_zero_formats_as_zero(decimals):
    assert format_units(0, decimals) == "0"


@pytest.mark.parametrize(
    "raw,decimals,expected",
    [
        (1_500_000, 6, "1.5"),
        (1_000_000_000_000_000_000, 18, "1"),
        (1, 18, "0.000000000000000001"),
        (123_450_000, 8, "1.2345"),
        (42, 0, "42"),
        (100, 2, "1"),
    ],
)
def test_format_units(raw, decimals, expected):
    assert format_units(raw, decimals) == expected


def test_formatting_strips_trailing_fraction_zeros():
    formatted = format_units(2_500_000_000_000_000_000, 18)
    assert formatted == "2.5"
    assert not formatted.endswith("0")


@pytest.mark.parametrize(
    "text,decimals,expected",
    [
        ("1.5", 6, 1_500_000),
        ("  1  ", 18, 10**18),
        ("0.000001", 6, 1),
        (".5", 1, 5),
        ("5.", 2, 500),
        ("123", 0, 123),
    ],
)
def test_parse_units(text, decimals, expected):
    assert parse_units(text, decimals) == expected


def test_parse_truncates_excess_precision():
    assert parse_units("1.23456789", 6) == 1_234_567
    assert parse_units("0.0000009", 6) == 0


@pytest.mark.parametrize("text", ["", "   ", "-1", "-0.5", "1.2.3", "abc", "1e18", "1,5", ".", "1. 5", "²", "1.²", "١", "１"])
def test_parse_rejects_malformed_input(text):
    with pytest.raises(ParseError):
        parse_units(text, 18)


def test_parse_rejects_values_above_uint256():
    with pytest.raises(ParseError):
        parse_units(str(UINT256_MAX + 1), 0)


@pytest.mark.parametrize(
    "raw,decimals",
    [(0, 18), (1, 18), (10**18, 18), (123_456_789, 6), (UINT256_MAX, 18), (999, 0), (10**30 + 7, 8)],
)
def test_round_trip(raw, decimals):
    assert parse_units(format_units(raw, decimals), decimals) == raw


def test_one_ether_end_to_end():
    amount_in = 1_000_000_000_000_000_000
    formatted = format_units(amount_in, 18)
    assert formatted == "1"
    assert parse_units(formatted, 18) == amount_in


def test_to_decimal_is_exact():
    assert to_decimal(1_234_567, 6) == Decimal("1.234567")
    assert to_decimal(UINT256_MAX, 0) == Decimal(UINT256_MAX)


def test_checked_uint_enforces_working_width():
    assert checked_uint(2**128 - 1, "amount") == 2**128 - 1
    with pytest.raises(NumericOverflowError):
        checked_uint(2**128, "amount")
    with pytest.raises(NumericOverflowError):
        checked_uint(-1, "amount")


def test_decimal_to_uint_truncates_toward_zero():
    assert decimal_to_uint(Decimal("994999.9999"), "min_out") == 994_999
    with pytest.raises(NumericOverflowError):
        decimal_to_uint(Decimal(2**128), "min_out")
    with pytest.raises(NumericOverflowError):
        decimal_to_uint(Decimal("-1.5"), "min_out")
