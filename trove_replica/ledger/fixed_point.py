"""Fixed-point helpers — minor-unit integers <-> decimal strings, u128 limbs.

Financial amounts stay in Python ints end to end. Decimal is used only to
read caller text or an already-lossy float exactly; it never carries an
amount through arithmetic.
"""
from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation

U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1


def u128_from_limbs(low: int, high: int) -> int:
    """Rebuild a u128 stored as two little-endian u64 limbs (low first)."""
    if not 0 <= low <= U64_MAX or not 0 <= high <= U64_MAX:
        raise ValueError(f"u64 limb out of range: low={low} high={high}")
    return (high << 64) | low


def u128_to_limbs(value: int) -> tuple[int, int]:
    """Split a u128 into ``(low, high)`` u64 limbs."""
    if not 0 <= value <= U128_MAX:
        raise ValueError(f"u128 out of range: {value}")
    return value & U64_MAX, value >> 64


def _to_decimal(amount: str | int | float | Decimal) -> Decimal:
    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, float):
        if not math.isfinite(amount):
            raise ValueError(f"Cannot convert non-finite number ({amount})")
        # repr() is the shortest string that round-trips the float
        value = Decimal(repr(amount))
    else:
        try:
            value = Decimal(str(amount).strip())
        except InvalidOperation as e:
            raise ValueError(f"Not a decimal amount: {amount!r}") from e

    if not value.is_finite():
        raise ValueError(f"Cannot convert non-finite number ({amount})")
    return value


def to_minor_units(amount: str | int | float | Decimal, decimals: int) -> int:
    """Convert a human amount to minor units, truncating toward zero.

    Examples:
        to_minor_units("1.5", 9)        -> 1500000000
        to_minor_units("0.0000000019", 9) -> 1
        to_minor_units("-2.75", 1)      -> -27
    """
    if decimals < 0:
        raise ValueError(f"decimals must be >= 0, got {decimals}")

    sign, digits, exponent = _to_decimal(amount).as_tuple()
    coefficient = int("".join(str(d) for d in digits) or "0")

    shift = exponent + decimals
    if shift >= 0:
        magnitude = coefficient * 10**shift
    else:
        magnitude = coefficient // 10**(-shift)

    return -magnitude if sign else magnitude


def to_decimal_string(amount: int, decimals: int, precision: int | None = None) -> str:
    """Render minor units as a decimal string.

    The fraction is cut (not rounded) to ``precision`` digits and trailing
    zeros are dropped. The integer part is never shortened, whatever its
    width.
    """
    if decimals < 0:
        raise ValueError(f"decimals must be >= 0, got {decimals}")
    if precision is None:
        precision = decimals

    negative = amount < 0
    digits = str(-amount if negative else amount)

    if decimals == 0:
        integer_part, fractional_part = digits, ""
    else:
        digits = digits.rjust(decimals + 1, "0")
        integer_part = digits[:-decimals]
        fractional_part = digits[-decimals:][: max(precision, 0)].rstrip("0")

    sign = "-" if negative and (integer_part.strip("0") or fractional_part) else ""
    if not fractional_part:
        return f"{sign}{integer_part}"
    return f"{sign}{integer_part}.{fractional_part}"
