"""Collateralization ratio in the on-chain integer domain.

Ratios are percents scaled by 1e6: 115_000_000 means 115%.
"""
from __future__ import annotations

import math
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from ..models import Position
from .fixed_point import U64_MAX, to_decimal_string

RATIO_DECIMALS = 6
RATIO_SCALE = 10**RATIO_DECIMALS
MAX_RATIO = U64_MAX
DEFAULT_PRICE_DECIMALS = 6


def quantize_price(price_usd: float, price_decimals: int = DEFAULT_PRICE_DECIMALS) -> int:
    """Quantize a float USD price to an integer with ``price_decimals`` places.

    Rounds half up, e.g. 150.1234567 -> 150123457 at six places.
    """
    if not math.isfinite(price_usd) or price_usd < 0:
        raise ValueError(f"Invalid price: {price_usd}")
    scaled = Decimal(repr(price_usd)).scaleb(price_decimals)
    return int(scaled.to_integral_value(rounding=ROUND_HALF_UP))


def compute_ratio(
    collateral_amount: int,
    debt_amount: int,
    price_usd: float,
    collateral_decimals: int = 0,
    debt_decimals: int = 0,
    price_decimals: int = DEFAULT_PRICE_DECIMALS,
) -> int:
    """Collateralization ratio of a trove, floored, 1e6-scaled percent.

    With both amounts in the same units (decimals 0) this is
    ``floor(collateral * price_scaled * 100 / debt)``. With minor-unit
    exponents the program floors twice: first the collateral value to whole
    price units, then the ratio. Both floors are kept here.

    Zero debt yields ``MAX_RATIO``.
    """
    if debt_amount == 0:
        return MAX_RATIO

    price_scaled = quantize_price(price_usd, price_decimals)
    value = collateral_amount * price_scaled // 10**collateral_decimals
    numerator = value * 100 * RATIO_SCALE * 10**debt_decimals
    denominator = debt_amount * 10**price_decimals
    return min(numerator // denominator, MAX_RATIO)


def reprice_positions(
    positions: Iterable[Position],
    price_usd: float,
    collateral_decimals: int = 0,
    debt_decimals: int = 0,
    price_decimals: int = DEFAULT_PRICE_DECIMALS,
) -> list[Position]:
    """Recompute every stored ratio from a live price."""
    return [
        replace(
            p,
            ratio=compute_ratio(
                p.collateral_amount,
                p.debt_amount,
                price_usd,
                collateral_decimals,
                debt_decimals,
                price_decimals,
            ),
        )
        for p in positions
    ]


def format_ratio(ratio: int, precision: int = 2) -> str:
    """Human percent string, e.g. 115_500_000 -> '115.5%'."""
    if ratio >= MAX_RATIO:
        return "∞"
    return f"{to_decimal_string(ratio, RATIO_DECIMALS, precision)}%"
