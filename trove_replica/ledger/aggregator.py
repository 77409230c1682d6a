"""Trove aggregation — inner join of debt, collateral and ratio accounts."""
from __future__ import annotations

import logging
from typing import Iterable, Mapping

from ..models import CollateralRecord, DebtRecord, Position, RatioRecord, RawAccount
from .decoder import RecordKind, try_decode

logger = logging.getLogger(__name__)


def collect_debts(debt_accounts: Iterable[RawAccount]) -> dict[str, int]:
    """Owner -> debt for every decodable debt account with positive debt."""
    debts: dict[str, int] = {}
    for account in debt_accounts:
        record = try_decode(account, RecordKind.USER_DEBT)
        if isinstance(record, DebtRecord) and record.amount > 0:
            debts[record.owner] = record.amount
    return debts


def join_troves(
    debts: Mapping[str, int],
    collateral_accounts: Iterable[RawAccount],
    ratio_accounts: Iterable[RawAccount],
    denom: str | None = None,
) -> list[Position]:
    """Join already collected debts with collateral and ratio accounts.

    A ratio account holding 0 was never written by the program and does
    not count as a ratio record.
    """
    ratios: dict[str, tuple[int, str]] = {}
    for account in ratio_accounts:
        record = try_decode(account, RecordKind.LIQUIDITY_THRESHOLD)
        if isinstance(record, RatioRecord) and record.ratio > 0:
            ratios[record.owner] = (record.ratio, account.pubkey)

    positions: list[Position] = []
    seen: set[tuple[str, str]] = set()
    incomplete = 0

    for account in collateral_accounts:
        record = try_decode(account, RecordKind.USER_COLLATERAL)
        if not isinstance(record, CollateralRecord) or record.amount <= 0:
            continue
        if denom is not None and record.denom != denom:
            continue

        key = (record.owner, record.denom)
        if key in seen:
            logger.debug("Duplicate collateral account for %s/%s", *key)
            continue

        debt = debts.get(record.owner)
        ratio = ratios.get(record.owner)
        if debt is None or ratio is None:
            incomplete += 1
            continue

        seen.add(key)
        positions.append(
            Position(
                owner=record.owner,
                debt_amount=debt,
                collateral_amount=record.amount,
                collateral_denom=record.denom,
                ratio=ratio[0],
                ratio_account_id=ratio[1],
            )
        )

    logger.debug(
        "Aggregated %d troves (%d debt, %d ratio records, %d incomplete owners excluded)",
        len(positions), len(debts), len(ratios), incomplete,
    )
    return positions


def aggregate_troves(
    debt_accounts: Iterable[RawAccount],
    collateral_accounts: Iterable[RawAccount],
    ratio_accounts: Iterable[RawAccount],
    denom: str | None = None,
) -> list[Position]:
    """Join independently fetched accounts on owner into live positions.

    An owner yields a position only when all three records exist with
    positive amounts and (if ``denom`` is given) the collateral matches it.
    With ``denom=None`` every collateral denom of an owner becomes its own
    position. Missing markers and undecodable buffers are skipped. Output
    order is unspecified.
    """
    return join_troves(
        collect_debts(debt_accounts), collateral_accounts, ratio_accounts, denom=denom
    )
