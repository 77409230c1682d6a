"""Shared test fixtures, account byte builders and sample data."""
from __future__ import annotations

import hashlib
import struct
import textwrap
from pathlib import Path

import base58
import pytest

from trove_replica.config import (
    AppConfig,
    ChainConfig,
    MonitorConfig,
    NotificationsConfig,
    PriceOracleConfig,
    ProtocolConfig,
    PythConfig,
    TelegramConfig,
    ThresholdsConfig,
    WatchConfig,
)
from trove_replica.models import Position, RawAccount

U64 = 2**64 - 1


# ---------------------------------------------------------------------------
# Account byte builders
# ---------------------------------------------------------------------------


class Accounts:
    """Little-endian account layouts, each prefixed by its discriminator."""

    @staticmethod
    def key(seed: int) -> str:
        """Deterministic base58 identifier for tests."""
        return base58.b58encode(bytes([seed]) * 32).decode("ascii")

    @staticmethod
    def disc(name: str) -> bytes:
        return hashlib.sha256(f"account:{name}".encode()).digest()[:8]

    @staticmethod
    def _key_bytes(key: str) -> bytes:
        return base58.b58decode(key)

    @staticmethod
    def _string(value: str) -> bytes:
        raw = value.encode()
        return struct.pack("<I", len(raw)) + raw

    @staticmethod
    def _u128(value: int) -> bytes:
        return struct.pack("<QQ", value & U64, value >> 64)

    @classmethod
    def debt(cls, owner: str, amount: int) -> bytes:
        # 8 trailing bytes of padding, as the deployed account carries
        return (
            cls.disc("UserDebtAmount")
            + cls._key_bytes(owner)
            + struct.pack("<Q", amount)
            + bytes(8)
        )

    @classmethod
    def collateral(cls, owner: str, denom: str, amount: int) -> bytes:
        return (
            cls.disc("UserCollateralAmount")
            + cls._key_bytes(owner)
            + cls._string(denom)
            + struct.pack("<Q", amount)
        )

    @classmethod
    def ratio(cls, owner: str, ratio: int) -> bytes:
        return cls.disc("LiquidityThreshold") + cls._key_bytes(owner) + struct.pack("<Q", ratio)

    @classmethod
    def stake(
        cls, owner: str, amount: int, p_snapshot: int, epoch: int = 0, block: int = 0
    ) -> bytes:
        return (
            cls.disc("UserStakeAmount")
            + cls._key_bytes(owner)
            + struct.pack("<Q", amount)
            + cls._u128(p_snapshot)
            + struct.pack("<QQ", epoch, block)
        )

    @classmethod
    def pool_snapshot(cls, denom: str, s_factor: int, total_gained: int = 0, epoch: int = 0) -> bytes:
        return (
            cls.disc("StabilityPoolSnapshot")
            + cls._string(denom)
            + cls._u128(s_factor)
            + struct.pack("<QQ", total_gained, epoch)
        )

    @classmethod
    def user_snapshot(cls, owner: str, denom: str, s_snapshot: int, pending: int = 0) -> bytes:
        return (
            cls.disc("UserCollateralSnapshot")
            + cls._key_bytes(owner)
            + cls._string(denom)
            + cls._u128(s_snapshot)
            + struct.pack("<Q", pending)
        )

    @classmethod
    def state(
        cls,
        minimum_collateral_ratio: int = 115_000_000,
        protocol_fee: int = 5,
        total_debt: int = 0,
        total_stake: int = 0,
        p_factor: int = 10**18,
        epoch: int = 0,
    ) -> bytes:
        return (
            cls.disc("StateAccount")
            + b"".join(cls._key_bytes(cls.key(i)) for i in range(100, 105))
            + struct.pack("<QB", minimum_collateral_ratio, protocol_fee)
            + cls._key_bytes(cls.key(105))
            + struct.pack("<QQQ", 7, total_debt, total_stake)
            + cls._u128(p_factor)
            + struct.pack("<Q", epoch)
        )


@pytest.fixture()
def accounts() -> type[Accounts]:
    return Accounts


@pytest.fixture()
def owners() -> list[str]:
    return [Accounts.key(i) for i in range(1, 9)]


def make_position(
    owner: str,
    ratio: int,
    debt: int = 100,
    collateral: int = 1_000,
    denom: str = "SOL",
) -> Position:
    return Position(
        owner=owner,
        debt_amount=debt,
        collateral_amount=collateral,
        collateral_denom=denom,
        ratio=ratio,
        ratio_account_id=f"lt-{owner}",
    )


@pytest.fixture()
def position_factory():
    return make_position


@pytest.fixture()
def raw_account():
    def _raw(pubkey: str, data: bytes | None) -> RawAccount:
        return RawAccount(pubkey=pubkey, data=data)

    return _raw


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_thresholds() -> ThresholdsConfig:
    return ThresholdsConfig(warning_ratio=130_000_000, liquidation_ratio=110_000_000)


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=10,
        batch_size=2,
    )


@pytest.fixture()
def sample_protocol_config() -> ProtocolConfig:
    return ProtocolConfig(
        program_id="HQbV7SKnWuWPHEci5eejsnJG7qwYuQkGzJHJ6nhLZhxk",
        collateral_denoms=("SOL",),
        collateral_decimals={"SOL": 9},
        debt_decimals=18,
        price_decimals=6,
        redemption_max_positions=20,
        liquidation_max_positions=50,
    )


@pytest.fixture()
def sample_pyth_config() -> PythConfig:
    return PythConfig(
        hermes_url="https://hermes.pyth.network/v2/updates/price/latest",
        feeds={"SOL": "abc123"},
        max_age_seconds=60,
    )


@pytest.fixture()
def sample_app_config(
    sample_thresholds: ThresholdsConfig,
    sample_chain_config: ChainConfig,
    sample_protocol_config: ProtocolConfig,
    sample_pyth_config: PythConfig,
) -> AppConfig:
    return AppConfig(
        monitor=MonitorConfig(
            refresh_interval_seconds=30, report_size=3, thresholds=sample_thresholds
        ),
        watchlist=(
            WatchConfig(label="test-trove", owner=Accounts.key(1), denom="SOL"),
        ),
        chain=sample_chain_config,
        protocol=sample_protocol_config,
        price_oracle=PriceOracleConfig(provider="pyth", pyth=sample_pyth_config),
        notifications=NotificationsConfig(
            telegram=TelegramConfig(
                enabled=True,
                alert_bot_token="fake-alert-token",
                log_bot_token="fake-log-token",
                chat_id="12345",
            ),
        ),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    monitor:
      refresh_interval_seconds: 45
      report_size: 5
      thresholds:
        warning_ratio: 140000000
        liquidation_ratio: 115000000
    watchlist:
      - label: test-trove
        owner: "4Nd1mBQtrMJVYVfKf2PJy9NZUZdTAsp7D4xWLs4gDB4T"
        denom: SOL
    chain:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
    protocol:
      program_id: "HQbV7SKnWuWPHEci5eejsnJG7qwYuQkGzJHJ6nhLZhxk"
      collateral_denoms: [SOL]
      collateral_decimals: {SOL: 9}
      debt_decimals: 18
    price_oracle:
      provider: pyth
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds: {SOL: "aaa"}
        max_age_seconds: 30
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: "999"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
