"""Command-line interface for the trove replica."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .chains.solana import SolanaClient
from .config import AppConfig, load_config
from .errors import TroveReplicaError
from .ledger.fixed_point import to_decimal_string, to_minor_units
from .ledger.ratio import RATIO_DECIMALS, format_ratio
from .logging_setup import configure_logging
from .oracles import PythOracle
from .protocols.aerospacer import AerospacerAdapter
from .services import Monitor

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="trove-replica",
        description="Read-side replica of the Aerospacer sorted trove list",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("check", help="Refresh once and alert on watchlist troves")
    sub.add_parser("report", help="Send the riskiest troves report")

    monitor_parser = sub.add_parser("monitor", help="Continuous refresh loop")
    monitor_parser.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Refresh interval in seconds (overrides config)",
    )

    troves = sub.add_parser("troves", help="List troves, riskiest first")
    troves.add_argument("--denom", default="SOL")
    troves.add_argument("--limit", type=int, default=20)

    hints = sub.add_parser("hints", help="Neighbor hints for opening or adjusting a trove")
    hints.add_argument("--owner", required=True)
    hints.add_argument("--collateral", required=True, help="Collateral amount, e.g. 1.5")
    hints.add_argument("--debt", required=True, help="Debt amount, e.g. 100")
    hints.add_argument("--denom", default="SOL")

    liq = sub.add_parser("liquidatable", help="Troves below the liquidation threshold")
    liq.add_argument("--denom", default="SOL")
    liq.add_argument(
        "--threshold",
        default=None,
        help="Threshold in percent, e.g. 110 (default: config liquidation_ratio)",
    )

    redeem = sub.add_parser("redeem", help="Estimate a redemption")
    redeem.add_argument("--amount", required=True, help="Stablecoin amount to redeem")
    redeem.add_argument("--denom", default="SOL")
    redeem.add_argument("--max-positions", type=int, default=None)

    rewards = sub.add_parser("rewards", help="Stability pool position of a depositor")
    rewards.add_argument("--owner", required=True)
    rewards.add_argument("--denom", default="SOL")

    return parser


def _build_adapter(config: AppConfig) -> AerospacerAdapter:
    return AerospacerAdapter(SolanaClient(config.chain), config.protocol)


async def _fetch_price(config: AppConfig, denom: str) -> float | None:
    prices = await PythOracle(config.price_oracle.pyth).fetch_prices([denom])
    return prices.get(denom)


def _collateral_decimals(config: AppConfig, denom: str) -> int:
    return config.protocol.collateral_decimals.get(denom, 0)


async def _troves(config: AppConfig, args: argparse.Namespace) -> None:
    price = await _fetch_price(config, args.denom)
    ordered = await _build_adapter(config).fetch_positions(args.denom, price)
    decimals = _collateral_decimals(config, args.denom)

    print(f"{len(ordered)} {args.denom} troves (showing {min(args.limit, len(ordered))})")
    for rank, p in enumerate(ordered[: args.limit], start=1):
        print(
            f"{rank:>4}. {p.owner}  ICR {format_ratio(p.ratio):>10}  "
            f"coll {to_decimal_string(p.collateral_amount, decimals, 4)}  "
            f"debt {to_decimal_string(p.debt_amount, config.protocol.debt_decimals, 2)}"
        )


async def _hints(config: AppConfig, args: argparse.Namespace) -> None:
    price = await _fetch_price(config, args.denom)
    if price is None:
        raise TroveReplicaError(f"No price available for {args.denom}")

    adapter = _build_adapter(config)
    collateral = to_minor_units(args.collateral, _collateral_decimals(config, args.denom))
    debt = to_minor_units(args.debt, config.protocol.debt_decimals)

    hints = await adapter.neighbor_hints(args.owner, collateral, debt, args.denom, price)
    ratio = adapter.candidate_ratio(collateral, debt, args.denom, price)

    print(f"Candidate ICR: {format_ratio(ratio)}")
    print(f"prev: {hints.prev or '-'}")
    print(f"next: {hints.next or '-'}")
    print(f"hint accounts: {hints.hint_accounts()}")


async def _liquidatable(config: AppConfig, args: argparse.Namespace) -> None:
    threshold = config.monitor.thresholds.liquidation_ratio
    if args.threshold is not None:
        threshold = to_minor_units(args.threshold, RATIO_DECIMALS)

    price = await _fetch_price(config, args.denom)
    targets = await _build_adapter(config).liquidation_targets(args.denom, price, threshold)

    print(f"{len(targets)} {args.denom} troves below {format_ratio(threshold)}")
    for p in targets:
        print(f"  {p.owner}  ICR {format_ratio(p.ratio)}")


async def _redeem(config: AppConfig, args: argparse.Namespace) -> None:
    debt_decimals = config.protocol.debt_decimals
    decimals = _collateral_decimals(config, args.denom)
    amount = to_minor_units(args.amount, debt_decimals)

    price = await _fetch_price(config, args.denom)
    estimate = await _build_adapter(config).redemption_estimate(
        amount, args.denom, price, args.max_positions
    )

    print(f"Redeemed:   {to_decimal_string(estimate.amount_redeemed, debt_decimals, 2)}")
    print(f"Unfilled:   {to_decimal_string(estimate.unfilled_amount, debt_decimals, 2)}")
    print(
        f"Collateral: {to_decimal_string(estimate.collateral_estimate, decimals, 6)} "
        f"{args.denom} from {estimate.positions_consumed} troves"
    )
    for leg in estimate.legs:
        print(
            f"  {leg.owner}  debt {to_decimal_string(leg.debt_taken, debt_decimals, 2)}"
            f"  coll {to_decimal_string(leg.collateral_released, decimals, 6)}"
        )


async def _rewards(config: AppConfig, args: argparse.Namespace) -> None:
    summary = await _build_adapter(config).fetch_stake_summary(args.owner, args.denom)
    if summary is None:
        print(f"{args.owner} has no stability pool stake")
        return

    debt_decimals = config.protocol.debt_decimals
    decimals = _collateral_decimals(config, args.denom)
    print(f"Deposited:    {to_decimal_string(summary.stake.amount, debt_decimals, 2)}")
    print(f"Compounded:   {to_decimal_string(summary.compounded_stake, debt_decimals, 2)}")
    print(f"Pending gain: {to_decimal_string(summary.pending_gain, decimals, 6)} {args.denom}")
    print(f"Pool share:   {summary.pool_share:.4f}%")
    if not summary.epoch_current:
        print(f"Stake predates epoch {summary.current_epoch} and is fully diluted")


_QUERY_COMMANDS = {
    "troves": _troves,
    "hints": _hints,
    "liquidatable": _liquidatable,
    "redeem": _redeem,
    "rewards": _rewards,
}


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)

    query = _QUERY_COMMANDS.get(args.command)
    if query is not None:
        await query(config, args)
        return

    monitor = Monitor(config)
    if args.command == "check":
        await monitor.check_and_alert()
    elif args.command == "report":
        await monitor.generate_report()
    elif args.command == "monitor":
        await monitor.run_continuous(args.interval)
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        asyncio.run(_run(args))
    except (TroveReplicaError, RuntimeError) as e:
        # RuntimeError is what SolanaClient raises once every endpoint failed
        logger.error("%s", e)
        sys.exit(2)
    except KeyboardInterrupt:
        sys.exit(130)
