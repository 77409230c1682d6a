"""Stability pool rewards — Product-Sum bookkeeping.

The pool keeps a scale factor P that shrinks as liquidations consume
deposits, and a per-denom gain factor S that grows with collateral handed to
depositors. A depositor's snapshot of P and S at their last update lets both
values be derived without per-depositor loops:

    gain        = amount * (S_now - S_snapshot) / P_snapshot
    compounded  = amount * P_now / P_snapshot

When P would underflow, the program resets it and bumps the epoch; stakes
snapshotted in an older epoch are fully diluted. All arithmetic runs on
Python ints, so 128-bit factors and their products never truncate.
"""
from __future__ import annotations

from ..errors import DenomMismatch
from ..models import PoolSnapshotRecord, StakeRecord, UserCollateralSnapshotRecord

SCALE_FACTOR = 10**18


def pending_gain(
    stake: StakeRecord,
    pool_snapshot: PoolSnapshotRecord,
    user_snapshot: UserCollateralSnapshotRecord | None = None,
) -> int:
    """Collateral gain accrued since the depositor's last S snapshot.

    A depositor without a collateral snapshot has never claimed, so their S
    snapshot counts as zero. Returns 0 when S has not grown or the P
    snapshot is zero.
    """
    snapshot = 0
    if user_snapshot is not None:
        if user_snapshot.denom != pool_snapshot.denom:
            raise DenomMismatch(
                f"User snapshot {user_snapshot.denom} vs pool {pool_snapshot.denom}"
            )
        snapshot = user_snapshot.gain_factor_snapshot

    if pool_snapshot.gain_factor <= snapshot or stake.scale_snapshot == 0:
        return 0
    return stake.amount * (pool_snapshot.gain_factor - snapshot) // stake.scale_snapshot


def compounded_stake(stake: StakeRecord, current_scale_factor: int) -> int:
    """Deposit left after liquidations; unchanged for a zero P snapshot."""
    if stake.scale_snapshot == 0:
        return stake.amount
    return stake.amount * current_scale_factor // stake.scale_snapshot


def effective_compounded_stake(
    stake: StakeRecord, current_scale_factor: int, current_epoch: int
) -> int:
    """Compounded stake, or 0 when the snapshot predates the current epoch."""
    if stake.epoch_snapshot < current_epoch:
        return 0
    return compounded_stake(stake, current_scale_factor)


def pool_share_percent(compounded: int, total_stake: int) -> float:
    """Depositor's share of the pool as a display percentage."""
    if total_stake <= 0:
        return 0.0
    return compounded / total_stake * 100
