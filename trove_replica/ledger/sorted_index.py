"""Sorted trove index and neighbor hint resolution.

Ordering is ascending ratio (riskiest first), ties broken by larger debt
first. The index is rebuilt from scratch on every refresh; no list pointers
are read from chain or kept between calls.
"""
from __future__ import annotations

import bisect
from typing import Iterable, Sequence

from ..errors import DenomMismatch
from ..models import NeighborHints, Position


def sort_key(position: Position) -> tuple[int, int]:
    return (position.ratio, -position.debt_amount)


def sort_positions(positions: Iterable[Position]) -> list[Position]:
    """Return a new list in index order (stable for full ties)."""
    return sorted(positions, key=sort_key)


def validate_ordering(
    ratio: int, prev_ratio: int | None, next_ratio: int | None
) -> bool:
    """Same check the program runs on hints: prev <= ratio <= next."""
    if prev_ratio is not None and prev_ratio > ratio:
        return False
    if next_ratio is not None and ratio > next_ratio:
        return False
    return True


def find_neighbors(candidate: Position, ordered: Sequence[Position]) -> NeighborHints:
    """Simulate inserting ``candidate`` and return the adjacent ratio accounts.

    Any entry owned by the candidate's owner is dropped first so an update
    never neighbors its own prior state. ``prev`` is the nearest entry with
    ratio <= candidate's, ``next`` the nearest with a greater ratio.
    """
    for p in ordered:
        if p.collateral_denom != candidate.collateral_denom:
            raise DenomMismatch(
                f"Candidate denom {candidate.collateral_denom} "
                f"but index holds {p.collateral_denom}"
            )

    survivors = [p for p in ordered if p.owner != candidate.owner]
    index = bisect.bisect_right([p.ratio for p in survivors], candidate.ratio)

    prev = survivors[index - 1] if index > 0 else None
    nxt = survivors[index] if index < len(survivors) else None

    if not validate_ordering(
        candidate.ratio,
        prev.ratio if prev else None,
        nxt.ratio if nxt else None,
    ):
        raise ValueError("Positions passed to find_neighbors are not sorted")

    return NeighborHints(
        prev=prev.ratio_account_id if prev else None,
        next=nxt.ratio_account_id if nxt else None,
    )
