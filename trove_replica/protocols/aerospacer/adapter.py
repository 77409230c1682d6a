"""Aerospacer protocol adapter — builds the trove index and answers queries."""
from __future__ import annotations

import logging

from ...config import ProtocolConfig
from ...errors import MissingAccount
from ...interfaces.chain import ChainClient
from ...ledger.aggregator import collect_debts, join_troves
from ...ledger.decoder import RecordKind, decode, try_decode
from ...ledger.liquidation import select_liquidatable
from ...ledger.ratio import compute_ratio, reprice_positions
from ...ledger.redemption import net_after_fee, plan_redemption
from ...ledger.rewards import (
    effective_compounded_stake,
    pending_gain,
    pool_share_percent,
)
from ...ledger.sorted_index import find_neighbors, sort_positions
from ...models import (
    NeighborHints,
    PoolSnapshotRecord,
    Position,
    ProtocolStateRecord,
    RedemptionEstimate,
    StakeRecord,
    StakeSummary,
    UserCollateralSnapshotRecord,
)
from . import accounts

logger = logging.getLogger(__name__)

LIQUIDATION_THRESHOLD = 110_000_000


class AerospacerAdapter:
    """Read-side replica of the Aerospacer trove list on Solana.

    Every query rebuilds the index from a fresh fetch; nothing is cached
    between calls.
    """

    def __init__(self, chain_client: ChainClient, config: ProtocolConfig) -> None:
        self._client = chain_client
        self._config = config
        self._program_id = config.program_id

    @property
    def protocol_name(self) -> str:
        return "aerospacer"

    def _collateral_decimals(self, denom: str) -> int:
        return self._config.collateral_decimals.get(denom, 0)

    def candidate_ratio(
        self, collateral_amount: int, debt_amount: int, denom: str, price_usd: float
    ) -> int:
        return compute_ratio(
            collateral_amount,
            debt_amount,
            price_usd,
            self._collateral_decimals(denom),
            self._config.debt_decimals,
            self._config.price_decimals,
        )

    # ------------------------------------------------------------------
    # Index construction
    # ------------------------------------------------------------------

    async def fetch_positions(
        self, denom: str, price_usd: float | None = None
    ) -> list[Position]:
        """Fetch, decode, join, reprice and sort all troves of ``denom``.

        Without a price the ratios stored on chain are kept.
        """
        debt_accounts = await self._client.get_program_accounts(
            self._program_id, [accounts.discriminator_filter(RecordKind.USER_DEBT)]
        )

        debts = collect_debts(debt_accounts)
        if not debts:
            logger.info("No open troves found for %s", denom)
            return []

        ratio_accounts = await self._client.get_multiple_accounts(
            [accounts.liquidity_threshold_address(self._program_id, o) for o in debts]
        )
        collateral_accounts = await self._client.get_program_accounts(
            self._program_id,
            [
                accounts.discriminator_filter(RecordKind.USER_COLLATERAL),
                accounts.denom_filter(denom),
            ],
        )

        positions = join_troves(debts, collateral_accounts, ratio_accounts, denom=denom)

        if price_usd is not None:
            positions = reprice_positions(
                positions,
                price_usd,
                self._collateral_decimals(denom),
                self._config.debt_decimals,
                self._config.price_decimals,
            )

        ordered = sort_positions(positions)
        logger.info(
            "Built %s trove index: %d troves from %d debt accounts",
            denom, len(ordered), len(debt_accounts),
        )
        return ordered

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def neighbor_hints(
        self,
        owner: str,
        collateral_amount: int,
        debt_amount: int,
        denom: str,
        price_usd: float,
    ) -> NeighborHints:
        """Hints for an open or adjust of ``owner``'s trove at the given size."""
        ordered = await self.fetch_positions(denom, price_usd)
        candidate = Position(
            owner=owner,
            debt_amount=debt_amount,
            collateral_amount=collateral_amount,
            collateral_denom=denom,
            ratio=self.candidate_ratio(collateral_amount, debt_amount, denom, price_usd),
            ratio_account_id=accounts.liquidity_threshold_address(self._program_id, owner),
        )
        return find_neighbors(candidate, ordered)

    async def liquidation_targets(
        self,
        denom: str,
        price_usd: float | None = None,
        threshold_ratio: int = LIQUIDATION_THRESHOLD,
    ) -> list[Position]:
        ordered = await self.fetch_positions(denom, price_usd)
        targets = select_liquidatable(
            ordered, threshold_ratio, self._config.liquidation_max_positions
        )
        logger.info("%d liquidatable %s troves below %d", len(targets), denom, threshold_ratio)
        return targets

    async def redemption_estimate(
        self,
        amount: int,
        denom: str,
        price_usd: float | None = None,
        max_positions: int | None = None,
    ) -> RedemptionEstimate:
        """Plan a redemption of a gross ``amount`` after the protocol fee."""
        state = await self.fetch_protocol_state()
        net = net_after_fee(amount, state.protocol_fee)
        ordered = await self.fetch_positions(denom, price_usd)
        if max_positions is None:
            max_positions = self._config.redemption_max_positions
        return plan_redemption(ordered, net, max_positions)

    async def fetch_protocol_state(self) -> ProtocolStateRecord:
        address = accounts.state_address(self._program_id)
        account = await self._client.get_account(address)
        if not account.exists:
            raise MissingAccount(f"Protocol state account {address} not found")
        record = decode(account.data, RecordKind.PROTOCOL_STATE)
        assert isinstance(record, ProtocolStateRecord)
        return record

    async def fetch_stake_summary(self, owner: str, denom: str) -> StakeSummary | None:
        """Stability pool position of ``owner``; None if they never staked."""
        state = await self.fetch_protocol_state()
        stake_acc, pool_acc, user_snap_acc = await self._client.get_multiple_accounts(
            [
                accounts.user_stake_address(self._program_id, owner),
                accounts.pool_snapshot_address(self._program_id, denom),
                accounts.user_collateral_snapshot_address(self._program_id, owner, denom),
            ]
        )

        stake = try_decode(stake_acc, RecordKind.USER_STAKE)
        if not isinstance(stake, StakeRecord):
            return None

        pool = try_decode(pool_acc, RecordKind.POOL_SNAPSHOT)
        user_snap = try_decode(user_snap_acc, RecordKind.USER_COLLATERAL_SNAPSHOT)
        if not isinstance(user_snap, UserCollateralSnapshotRecord):
            user_snap = None

        gain = 0
        if isinstance(pool, PoolSnapshotRecord):
            gain = pending_gain(stake, pool, user_snap)

        compounded = effective_compounded_stake(stake, state.scale_factor, state.epoch)
        return StakeSummary(
            owner=owner,
            denom=denom,
            stake=stake,
            pending_gain=gain,
            compounded_stake=compounded,
            current_epoch=state.epoch,
            pool_share=pool_share_percent(compounded, state.total_stake_amount),
        )
