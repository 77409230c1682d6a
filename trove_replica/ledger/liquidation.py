"""Liquidation candidate selection."""
from __future__ import annotations

from typing import Iterable

from ..models import Position


def select_liquidatable(
    ordered: Iterable[Position],
    threshold_ratio: int,
    max_positions: int | None = None,
) -> list[Position]:
    """Positions strictly below ``threshold_ratio``, riskiest first.

    ``max_positions`` truncates the result the way the on-chain query does.
    """
    selected = [p for p in ordered if p.ratio < threshold_ratio]
    if max_positions is not None:
        selected = selected[: max(max_positions, 0)]
    return selected
