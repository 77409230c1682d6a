"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_PROGRAM_ID = "HQbV7SKnWuWPHEci5eejsnJG7qwYuQkGzJHJ6nhLZhxk"
DEFAULT_RPC_ENDPOINT = "https://api.devnet.solana.com"

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ThresholdsConfig:
    """Alert thresholds as 1e6-scaled percents."""

    warning_ratio: int = 130_000_000
    liquidation_ratio: int = 110_000_000


@dataclass(frozen=True)
class MonitorConfig:
    refresh_interval_seconds: int = 60
    report_size: int = 10
    thresholds: ThresholdsConfig = field(default_factory=ThresholdsConfig)


@dataclass(frozen=True)
class WatchConfig:
    label: str = ""
    owner: str = ""
    denom: str = "SOL"


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = (DEFAULT_RPC_ENDPOINT,)
    rpc_timeout: int = 30
    commitment: str = "confirmed"
    batch_size: int = 100


@dataclass(frozen=True)
class ProtocolConfig:
    program_id: str = DEFAULT_PROGRAM_ID
    collateral_denoms: tuple[str, ...] = ("SOL",)
    collateral_decimals: dict[str, int] = field(default_factory=lambda: {"SOL": 9})
    debt_decimals: int = 18
    price_decimals: int = 6
    redemption_max_positions: int = 20
    liquidation_max_positions: int = 50


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)
    max_age_seconds: int = 60


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "pyth"
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class AppConfig:
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    watchlist: tuple[WatchConfig, ...] = ()
    chain: ChainConfig = field(default_factory=ChainConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_monitor(raw: dict[str, Any]) -> MonitorConfig:
    th = raw.get("thresholds", {})
    return MonitorConfig(
        refresh_interval_seconds=int(raw.get("refresh_interval_seconds", 60)),
        report_size=int(raw.get("report_size", 10)),
        thresholds=ThresholdsConfig(
            warning_ratio=int(th.get("warning_ratio", 130_000_000)),
            liquidation_ratio=int(th.get("liquidation_ratio", 110_000_000)),
        ),
    )


def _build_watchlist(raw: list[dict[str, Any]]) -> tuple[WatchConfig, ...]:
    return tuple(
        WatchConfig(
            label=w.get("label", ""),
            owner=w.get("owner", ""),
            denom=w.get("denom", "SOL"),
        )
        for w in raw
    )


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=tuple(raw.get("rpc_endpoints", [DEFAULT_RPC_ENDPOINT])),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        commitment=raw.get("commitment", "confirmed"),
        batch_size=int(raw.get("batch_size", 100)),
    )


def _build_protocol(raw: dict[str, Any]) -> ProtocolConfig:
    return ProtocolConfig(
        program_id=raw.get("program_id", DEFAULT_PROGRAM_ID),
        collateral_denoms=tuple(raw.get("collateral_denoms", ["SOL"])),
        collateral_decimals={
            k: int(v) for k, v in raw.get("collateral_decimals", {"SOL": 9}).items()
        },
        debt_decimals=int(raw.get("debt_decimals", 18)),
        price_decimals=int(raw.get("price_decimals", 6)),
        redemption_max_positions=int(raw.get("redemption_max_positions", 20)),
        liquidation_max_positions=int(raw.get("liquidation_max_positions", 50)),
    )


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "pyth"),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds=dict(pyth_raw.get("feeds", {})),
            max_age_seconds=int(pyth_raw.get("max_age_seconds", 60)),
        ),
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        monitor=_build_monitor(raw.get("monitor", {})),
        watchlist=_build_watchlist(raw.get("watchlist", [])),
        chain=_build_chain(raw.get("chain", {})),
        protocol=_build_protocol(raw.get("protocol", {})),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.chain.rpc_endpoints:
        raise ValueError("At least one RPC endpoint must be configured")

    if not cfg.protocol.program_id:
        raise ValueError("Protocol program_id is empty")

    for denom in cfg.protocol.collateral_denoms:
        if denom not in cfg.protocol.collateral_decimals:
            raise ValueError(f"Collateral denom '{denom}' has no decimals entry")

    thresholds = cfg.monitor.thresholds
    if thresholds.liquidation_ratio > thresholds.warning_ratio:
        raise ValueError(
            "liquidation_ratio must not exceed warning_ratio "
            f"({thresholds.liquidation_ratio} > {thresholds.warning_ratio})"
        )

    for watch in cfg.watchlist:
        if not watch.owner:
            raise ValueError(f"Watchlist entry '{watch.label}' has no owner")
        if watch.denom not in cfg.protocol.collateral_denoms:
            raise ValueError(
                f"Watchlist entry '{watch.label}' references unknown denom '{watch.denom}'"
            )
