"""Redemption planning — proportional extraction from the riskiest troves.

The result is an estimate for display and validation; the program performs
the authoritative extraction.
"""
from __future__ import annotations

from typing import Sequence

from ..errors import DenomMismatch
from ..models import Position, RedemptionEstimate, RedemptionLeg


def net_after_fee(amount: int, fee_percent: int) -> int:
    """Amount left after the protocol's percentage fee, fee floored."""
    if amount <= 0 or fee_percent <= 0:
        return max(amount, 0)
    return amount - amount * fee_percent // 100


def plan_redemption(
    ordered: Sequence[Position],
    requested_net_amount: int,
    max_positions_touched: int,
) -> RedemptionEstimate:
    """Walk from the riskiest trove, taking debt until the request is filled.

    Each trove gives ``min(remaining, debt)`` and releases
    ``floor(collateral * taken / debt)``. The walk stops once nothing
    remains or ``max_positions_touched`` troves were visited.
    """
    denoms = {p.collateral_denom for p in ordered}
    if len(denoms) > 1:
        raise DenomMismatch(f"Redemption across mixed denoms: {sorted(denoms)}")

    remaining = max(requested_net_amount, 0)
    collateral_total = 0
    legs: list[RedemptionLeg] = []

    for position in ordered[: max(max_positions_touched, 0)]:
        if remaining == 0:
            break
        if position.debt_amount <= 0:
            continue

        taken = min(remaining, position.debt_amount)
        released = position.collateral_amount * taken // position.debt_amount

        legs.append(
            RedemptionLeg(
                owner=position.owner,
                debt_taken=taken,
                collateral_released=released,
            )
        )
        collateral_total += released
        remaining -= taken

    redeemed = max(requested_net_amount, 0) - remaining
    return RedemptionEstimate(
        collateral_estimate=collateral_total,
        positions_consumed=len(legs),
        amount_redeemed=redeemed,
        unfilled_amount=remaining,
        legs=tuple(legs),
    )
