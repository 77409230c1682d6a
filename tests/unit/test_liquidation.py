"""Unit tests for liquidation candidate selection."""
from __future__ import annotations

import pytest

from trove_replica.ledger.liquidation import select_liquidatable
from trove_replica.ledger.sorted_index import sort_positions

E6 = 1_000_000


@pytest.fixture()
def index(position_factory, owners):
    return sort_positions(
        position_factory(owners[i], r * E6) for i, r in enumerate([116, 90, 115, 114])
    )


class TestSelectLiquidatable:
    def test_strictly_below_threshold(self, index) -> None:
        selected = select_liquidatable(index, 115 * E6)
        assert [p.ratio for p in selected] == [90 * E6, 114 * E6]

    def test_is_prefix_of_index(self, index) -> None:
        selected = select_liquidatable(index, 115 * E6)
        assert selected == index[: len(selected)]

    def test_cap(self, index) -> None:
        assert [p.ratio for p in select_liquidatable(index, 200 * E6, max_positions=1)] == [
            90 * E6
        ]

    def test_nothing_below(self, index) -> None:
        assert select_liquidatable(index, 90 * E6) == []

    def test_empty(self) -> None:
        assert select_liquidatable([], 115 * E6) == []
