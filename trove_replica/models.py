"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class RawAccount:
    """Account bytes as returned by the chain.

    ``data`` is ``None`` when the identifier resolved to nothing; that is the
    missing marker batch fetches hand back instead of raising.
    """

    pubkey: str
    data: bytes | None = None

    @property
    def exists(self) -> bool:
        return self.data is not None


# ---------------------------------------------------------------------------
# Decoded on-chain records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DebtRecord:
    """UserDebtAmount account."""

    owner: str
    amount: int


@dataclass(frozen=True)
class CollateralRecord:
    """UserCollateralAmount account (one per owner and denom)."""

    owner: str
    denom: str
    amount: int


@dataclass(frozen=True)
class RatioRecord:
    """LiquidityThreshold account holding the owner's stored ratio."""

    owner: str
    ratio: int


@dataclass(frozen=True)
class StakeRecord:
    """UserStakeAmount account of a stability pool depositor."""

    owner: str
    amount: int
    scale_snapshot: int
    epoch_snapshot: int
    last_update_block: int


@dataclass(frozen=True)
class PoolSnapshotRecord:
    """StabilityPoolSnapshot account (one per collateral denom)."""

    denom: str
    gain_factor: int
    total_collateral_gained: int
    epoch: int


@dataclass(frozen=True)
class UserCollateralSnapshotRecord:
    """UserCollateralSnapshot account (one per owner and denom)."""

    owner: str
    denom: str
    gain_factor_snapshot: int
    pending_gain: int


@dataclass(frozen=True)
class ProtocolStateRecord:
    """Protocol-wide StateAccount."""

    admin: str
    oracle_helper: str
    oracle_state: str
    fee_distributor: str
    fee_state: str
    minimum_collateral_ratio: int
    protocol_fee: int
    stable_coin_mint: str
    stable_coin_code_id: int
    total_debt_amount: int
    total_stake_amount: int
    scale_factor: int
    epoch: int


Record = Union[
    DebtRecord,
    CollateralRecord,
    RatioRecord,
    StakeRecord,
    PoolSnapshotRecord,
    UserCollateralSnapshotRecord,
    ProtocolStateRecord,
]


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Position:
    """A live trove: debt, collateral and ratio joined on owner."""

    owner: str
    debt_amount: int
    collateral_amount: int
    collateral_denom: str
    ratio: int
    ratio_account_id: str


@dataclass(frozen=True)
class NeighborHints:
    """Ratio accounts adjacent to a simulated insertion point."""

    prev: str | None = None
    next: str | None = None

    def hint_accounts(self) -> list[str]:
        """Hint list in ``[prev?, next?]`` order.

        Without a ``prev`` the list is empty even when ``next`` exists: the
        on-chain validator reads a single hint as ``prev``.
        """
        if self.prev is None:
            return []
        accounts = [self.prev]
        if self.next is not None:
            accounts.append(self.next)
        return accounts


@dataclass(frozen=True)
class RedemptionLeg:
    """Debt and collateral taken from one trove during a redemption."""

    owner: str
    debt_taken: int
    collateral_released: int


@dataclass(frozen=True)
class RedemptionEstimate:
    """Display estimate of a redemption across the riskiest troves."""

    collateral_estimate: int
    positions_consumed: int
    amount_redeemed: int
    unfilled_amount: int
    legs: tuple[RedemptionLeg, ...] = ()


@dataclass(frozen=True)
class StakeSummary:
    """Stability pool position of one depositor for one denom."""

    owner: str
    denom: str
    stake: StakeRecord
    pending_gain: int
    compounded_stake: int
    current_epoch: int
    pool_share: float = 0.0

    @property
    def epoch_current(self) -> bool:
        return self.stake.epoch_snapshot >= self.current_epoch
