"""Unit tests for joining debt, collateral and ratio accounts into troves."""
from __future__ import annotations

import pytest

from trove_replica.ledger.aggregator import aggregate_troves, collect_debts, join_troves
from trove_replica.models import RawAccount


@pytest.fixture()
def chain_state(accounts, owners):
    """Nine owners covering every join outcome."""
    full, no_ratio, zero_debt, zero_coll, other_denom, no_debt, two_denoms, bad = owners
    zero_ratio = accounts.key(9)

    debts = [
        RawAccount("d1", accounts.debt(full, 100)),
        RawAccount("d2", accounts.debt(no_ratio, 100)),
        RawAccount("d3", accounts.debt(zero_debt, 0)),
        RawAccount("d4", accounts.debt(zero_coll, 100)),
        RawAccount("d5", accounts.debt(other_denom, 100)),
        RawAccount("d7", accounts.debt(two_denoms, 300)),
        RawAccount("d8", accounts.debt(bad, 100)),
        RawAccount("d9", accounts.debt(zero_ratio, 100)),
        RawAccount("missing"),
    ]
    collaterals = [
        RawAccount("c1", accounts.collateral(full, "SOL", 1_000)),
        RawAccount("c2", accounts.collateral(no_ratio, "SOL", 1_000)),
        RawAccount("c3", accounts.collateral(zero_debt, "SOL", 1_000)),
        RawAccount("c4", accounts.collateral(zero_coll, "SOL", 0)),
        RawAccount("c5", accounts.collateral(other_denom, "ETH", 1_000)),
        RawAccount("c6", accounts.collateral(no_debt, "SOL", 1_000)),
        RawAccount("c7a", accounts.collateral(two_denoms, "SOL", 500)),
        RawAccount("c7b", accounts.collateral(two_denoms, "ETH", 700)),
        RawAccount("c8", b"\x00" * 12),
        RawAccount("c9", accounts.collateral(zero_ratio, "SOL", 1_000)),
    ]
    ratios = [
        RawAccount("lt-full", accounts.ratio(full, 150_000_000)),
        RawAccount("lt-zero-debt", accounts.ratio(zero_debt, 150_000_000)),
        RawAccount("lt-zero-coll", accounts.ratio(zero_coll, 150_000_000)),
        RawAccount("lt-other", accounts.ratio(other_denom, 150_000_000)),
        RawAccount("lt-no-debt", accounts.ratio(no_debt, 150_000_000)),
        RawAccount("lt-two", accounts.ratio(two_denoms, 120_000_000)),
        RawAccount("lt-bad"),
        RawAccount("lt-zero-ratio", accounts.ratio(zero_ratio, 0)),
    ]
    return debts, collaterals, ratios


class TestAggregateTroves:
    def test_only_complete_positive_troves(self, chain_state, owners) -> None:
        positions = aggregate_troves(*chain_state, denom="SOL")
        by_owner = {p.owner: p for p in positions}

        assert set(by_owner) == {owners[0], owners[6]}
        full = by_owner[owners[0]]
        assert full.debt_amount == 100
        assert full.collateral_amount == 1_000
        assert full.ratio == 150_000_000
        assert full.ratio_account_id == "lt-full"

    def test_denom_filter(self, chain_state, owners) -> None:
        positions = aggregate_troves(*chain_state, denom="ETH")
        assert {(p.owner, p.collateral_amount) for p in positions} == {
            (owners[4], 1_000),
            (owners[6], 700),
        }

    def test_no_filter_yields_one_position_per_denom(self, chain_state, owners) -> None:
        positions = aggregate_troves(*chain_state)
        two = sorted(
            (p.collateral_denom, p.collateral_amount)
            for p in positions
            if p.owner == owners[6]
        )
        assert two == [("ETH", 700), ("SOL", 500)]
        assert all(p.collateral_denom in {"SOL", "ETH"} for p in positions)

    def test_every_position_has_all_three_parts(self, chain_state) -> None:
        for p in aggregate_troves(*chain_state):
            assert p.debt_amount > 0
            assert p.collateral_amount > 0
            assert p.ratio_account_id.startswith("lt-")

    def test_duplicate_collateral_account_counted_once(self, accounts, owners) -> None:
        owner = owners[0]
        positions = aggregate_troves(
            [RawAccount("d", accounts.debt(owner, 10))],
            [
                RawAccount("c1", accounts.collateral(owner, "SOL", 5)),
                RawAccount("c2", accounts.collateral(owner, "SOL", 5)),
            ],
            [RawAccount("lt", accounts.ratio(owner, 1))],
        )
        assert len(positions) == 1

    def test_empty_inputs(self) -> None:
        assert aggregate_troves([], [], []) == []

    def test_zero_ratio_account_excluded(self, chain_state, accounts) -> None:
        owners_seen = {p.owner for p in aggregate_troves(*chain_state)}
        assert accounts.key(9) not in owners_seen


class TestCollectDebts:
    def test_positive_debts_only(self, chain_state, owners) -> None:
        debts = collect_debts(chain_state[0])
        assert debts[owners[0]] == 100
        assert debts[owners[6]] == 300
        assert owners[2] not in debts

    def test_join_matches_aggregate(self, chain_state) -> None:
        debts, collaterals, ratios = chain_state
        joined = join_troves(collect_debts(debts), collaterals, ratios, denom="SOL")
        assert joined == aggregate_troves(debts, collaterals, ratios, denom="SOL")
