"""Trove monitoring orchestration — refreshes the index and alerts on the watchlist."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..chains.solana import SolanaClient
from ..config import AppConfig, WatchConfig
from ..interfaces.notifier import Notifier
from ..interfaces.price_oracle import PriceOracle
from ..interfaces.protocol_adapter import ProtocolAdapter
from ..ledger.fixed_point import to_decimal_string
from ..ledger.liquidation import select_liquidatable
from ..ledger.ratio import format_ratio
from ..models import Position
from ..notifications import TelegramNotifier
from ..oracles import PythOracle
from ..protocols.aerospacer import AerospacerAdapter
from .refresh import RefreshTask

logger = logging.getLogger(__name__)


class Monitor:
    """Keeps the per-denom trove index fresh and alerts on watched troves."""

    def __init__(
        self,
        config: AppConfig,
        adapter: ProtocolAdapter | None = None,
        oracle: PriceOracle | None = None,
        notifiers: list[Notifier] | None = None,
    ) -> None:
        self._config = config
        self._thresholds = config.monitor.thresholds
        self._denoms = config.protocol.collateral_denoms

        self._adapter: ProtocolAdapter = adapter or AerospacerAdapter(
            SolanaClient(config.chain), config.protocol
        )
        self._oracle: PriceOracle = oracle or PythOracle(config.price_oracle.pyth)

        if notifiers is None:
            notifiers = []
            if config.notifications.telegram.enabled:
                notifiers.append(TelegramNotifier(config.notifications.telegram))
        self._notifiers = notifiers

    # ------------------------------------------------------------------
    # Formatting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _short(address: str) -> str:
        if len(address) > 16:
            return f"{address[:6]}...{address[-6:]}"
        return address

    @staticmethod
    def _now_str() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    def _get_status(self, ratio: int) -> str:
        if ratio < self._thresholds.liquidation_ratio:
            return "🚨 CRITICAL"
        if ratio < self._thresholds.warning_ratio:
            return "⚠️ WARNING"
        return "✅ Healthy"

    def _amounts(self, position: Position) -> str:
        decimals = self._config.protocol.collateral_decimals.get(position.collateral_denom, 0)
        collateral = to_decimal_string(position.collateral_amount, decimals, 4)
        debt = to_decimal_string(position.debt_amount, self._config.protocol.debt_decimals, 2)
        return f"Collateral: {collateral} {position.collateral_denom}\nDebt: {debt}"

    def _build_log_message(self, watch: WatchConfig, position: Position) -> str:
        return (
            f"📊 {watch.label} · {watch.denom}\n"
            f"\n"
            f"{self._get_status(position.ratio)} · ICR {format_ratio(position.ratio)}\n"
            f"{self._amounts(position)}\n"
            f"\n"
            f"{self._now_str()} UTC"
        )

    def _build_alert(self, watch: WatchConfig, position: Position, critical: bool) -> str:
        limit = (
            self._thresholds.liquidation_ratio if critical else self._thresholds.warning_ratio
        )
        advice = (
            "⚠️ Trove is liquidatable. Add collateral or repay debt immediately!"
            if critical
            else "Consider adding collateral or repaying debt."
        )
        return (
            f"{self._get_status(position.ratio)} — ICR {format_ratio(position.ratio)}"
            f" (limit {format_ratio(limit)})\n"
            f"\n"
            f"{watch.label} · {watch.denom}\n"
            f"{self._amounts(position)}\n"
            f"\n"
            f"{advice}\n"
            f"\n"
            f"Owner: {self._short(watch.owner)}\n"
            f"{self._now_str()} UTC"
        )

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    async def _send_log(self, message: str, silent: bool = True) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message, silent=silent)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    async def _send_alert(self, message: str, subject: str = "") -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)

    # ------------------------------------------------------------------
    # Core workflows
    # ------------------------------------------------------------------

    async def refresh(self) -> dict[str, list[Position]]:
        """Rebuild the sorted trove index of every configured denom."""
        prices = await self._oracle.fetch_prices(list(self._denoms))

        indexes: dict[str, list[Position]] = {}
        for denom in self._denoms:
            price = prices.get(denom)
            if price is None:
                logger.warning("No fresh price for %s; using on-chain ratios", denom)
            ordered = await self._adapter.fetch_positions(denom, price)
            indexes[denom] = ordered

            at_risk = select_liquidatable(ordered, self._thresholds.liquidation_ratio)
            logger.info(
                "%s: %d troves, %d below %s",
                denom, len(ordered), len(at_risk),
                format_ratio(self._thresholds.liquidation_ratio),
            )
        return indexes

    async def check_and_alert(self) -> None:
        """Refresh and alert on every watchlist trove."""
        indexes = await self.refresh()

        for watch in self._config.watchlist:
            position = next(
                (p for p in indexes.get(watch.denom, []) if p.owner == watch.owner),
                None,
            )
            if position is None:
                await self._send_log(
                    f"📊 {watch.label} · {watch.denom}\n\nNo open trove found.\n\n"
                    f"{self._now_str()} UTC"
                )
                continue

            logger.info(
                "Trove — %s · %s · ICR %s",
                watch.label, watch.denom, format_ratio(position.ratio),
            )
            await self._send_log(self._build_log_message(watch, position))

            if position.ratio < self._thresholds.liquidation_ratio:
                await self._send_alert(
                    self._build_alert(watch, position, critical=True),
                    subject="🚨 CRITICAL: Trove liquidatable",
                )
            elif position.ratio < self._thresholds.warning_ratio:
                await self._send_alert(
                    self._build_alert(watch, position, critical=False),
                    subject="⚠️ WARNING: Low collateral ratio",
                )

    async def generate_report(self) -> str:
        """Send the riskiest troves of each denom and return the report text."""
        indexes = await self.refresh()
        size = self._config.monitor.report_size

        sections: list[str] = []
        for denom, ordered in indexes.items():
            lines = [f"━━ {denom} ({len(ordered)} troves) ━━"]
            for rank, position in enumerate(ordered[:size], start=1):
                lines.append(
                    f"{rank}. {self._short(position.owner)} · "
                    f"{format_ratio(position.ratio)} · {self._get_status(position.ratio)}"
                )
            if not ordered:
                lines.append("No open troves.")
            sections.append("\n".join(lines))

        report = (
            f"📋 Riskiest Troves Report\n"
            f"\n"
            + "\n\n".join(sections)
            + f"\n\n{self._now_str()} UTC"
        )

        await self._send_alert(report)
        logger.info("Report sent")
        return report

    async def run_continuous(self, interval_seconds: int | None = None) -> None:
        """Refresh and alert on a fixed cadence until cancelled."""
        interval = interval_seconds or self._config.monitor.refresh_interval_seconds
        logger.info("Starting continuous monitoring (every %d seconds)", interval)

        task = RefreshTask(self.check_and_alert, interval, name="trove-monitor")
        task.start()
        try:
            await task.wait()
        finally:
            await task.stop()
