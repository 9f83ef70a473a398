"""
Conversion between raw integer token amounts and human-readable values
"""
from decimal import ROUND_DOWN, Context, Decimal, localcontext
from typing import Final

from dexquote.core.errors import NumericOverflowError, ParseError

UINT256_MAX: Final[int] = 2**256 - 1

# Width of the fixed-precision integers used for rate arithmetic
WORKING_BITS: Final[int] = 128

# Enough digits for any uint256 times a small multiplier without rounding
DECIMAL_CONTEXT: Final[Context] = Context(prec=100)


def format_units(value: int, decimals: int) -> str:
    """
    Format a raw amount with `decimals` places

    Trailing fractional zeros are stripped, and the fraction is dropped
    entirely when nothing is left of it.

    >>> format_units(1_500_000, 6)
    '1.5'
    """
    if value < 0:
        raise NumericOverflowError(f"negative amount {value} is not a token quantity")
    if value == 0:
        return "0"

    digits = str(value)
    if decimals == 0:
        return digits

    if len(digits) <= decimals:
        fraction = digits.rjust(decimals, "0").rstrip("0")
        return f"0.{fraction}"

    integer, fraction = digits[:-decimals], digits[-decimals:].rstrip("0")
    if not fraction:
        return integer
    return f"{integer}.{fraction}"


def parse_units(amount: str, decimals: int) -> int:
    """
    Parse a human-readable amount into raw units

    Excess fractional digits are truncated, not rounded.

    >>> parse_units("1.5", 6)
    1500000
    """
    amount = amount.strip()

    if not amount:
        raise ParseError("Amount cannot be empty")
    if amount.startswith("-"):
        raise ParseError("Amount cannot be negative")

    parts = amount.split(".")
    if len(parts) > 2:
        raise ParseError("Invalid amount format")

    integer = parts[0]
    fraction = parts[1] if len(parts) == 2 else ""

    if not integer and not fraction:
        raise ParseError(f"Invalid amount: {amount!r}")
    for label, text in (("integer part", integer), ("fraction part", fraction)):
        if text and not (text.isascii() and text.isdigit()):
            raise ParseError(f"Invalid {label}: {text!r}")

    fraction = fraction[:decimals].ljust(decimals, "0")

    integer_value = int(integer) if integer else 0
    fraction_value = int(fraction) if fraction else 0
    value = integer_value * 10**decimals + fraction_value

    if value > UINT256_MAX:
        raise ParseError(f"Amount {amount} exceeds uint256 range")
    return value


def to_decimal(value: int, decimals: int) -> Decimal:
    """Exact decimal of a raw amount"""
    return Decimal(format_units(value, decimals))


def checked_uint(value: int, label: str, bits: int = WORKING_BITS) -> int:
    """Ensure an integer fits the working width; never truncates"""
    if value < 0 or value >= 1 << bits:
        raise NumericOverflowError(f"{label} {value} exceeds u{bits} range")
    return value


def decimal_to_uint(value: Decimal, label: str, bits: int = WORKING_BITS) -> int:
    """Truncate a decimal toward zero and range-check the result"""
    with localcontext(DECIMAL_CONTEXT):
        truncated = value.to_integral_value(rounding=ROUND_DOWN)
    if truncated < 0:
        raise NumericOverflowError(f"{label} {value} is negative")
    return checked_uint(int(truncated), label, bits)
