"""Binary record decoder — pure functions over raw account bytes, no I/O.

Every layout starts with an 8-byte discriminator that is skipped: the caller
already knows the kind from the query that produced the bytes. After it:

    integers     little-endian, fixed width
    u128         two u64 limbs, low first
    identifiers  raw 32-byte spans, rendered as base58
    strings      u32 little-endian length + that many UTF-8 bytes
"""
from __future__ import annotations

import enum
import logging
import struct
from typing import Callable

import base58

from ..errors import MalformedRecord
from ..models import (
    CollateralRecord,
    DebtRecord,
    PoolSnapshotRecord,
    ProtocolStateRecord,
    RatioRecord,
    RawAccount,
    Record,
    StakeRecord,
    UserCollateralSnapshotRecord,
)
from .fixed_point import u128_from_limbs

logger = logging.getLogger(__name__)

DISCRIMINATOR_SIZE = 8
PUBKEY_SIZE = 32


class RecordKind(enum.Enum):
    """Account kinds, valued by their on-chain struct name."""

    USER_DEBT = "UserDebtAmount"
    USER_COLLATERAL = "UserCollateralAmount"
    LIQUIDITY_THRESHOLD = "LiquidityThreshold"
    USER_STAKE = "UserStakeAmount"
    POOL_SNAPSHOT = "StabilityPoolSnapshot"
    USER_COLLATERAL_SNAPSHOT = "UserCollateralSnapshot"
    PROTOCOL_STATE = "StateAccount"


# Minimum sizes, strings counted as empty.
MIN_LENGTH: dict[RecordKind, int] = {
    RecordKind.USER_DEBT: 8 + 32 + 8,
    RecordKind.USER_COLLATERAL: 8 + 32 + 4 + 8,
    RecordKind.LIQUIDITY_THRESHOLD: 8 + 32 + 8,
    RecordKind.USER_STAKE: 8 + 32 + 8 + 16 + 8 + 8,
    RecordKind.POOL_SNAPSHOT: 8 + 4 + 16 + 8 + 8,
    RecordKind.USER_COLLATERAL_SNAPSHOT: 8 + 32 + 4 + 16 + 8,
    RecordKind.PROTOCOL_STATE: 8 + 5 * 32 + 8 + 1 + 32 + 8 + 8 + 8 + 16 + 8,
}


class _Reader:
    """Forward-only cursor over one account buffer."""

    def __init__(self, data: bytes, kind: RecordKind) -> None:
        self._data = data
        self._kind = kind
        self._offset = DISCRIMINATOR_SIZE

    def _take(self, size: int) -> bytes:
        end = self._offset + size
        if end > len(self._data):
            raise MalformedRecord(
                f"{self._kind.value}: need {end} bytes at offset {self._offset}, "
                f"buffer has {len(self._data)}"
            )
        chunk = self._data[self._offset:end]
        self._offset = end
        return chunk

    def u8(self) -> int:
        return self._take(1)[0]

    def u32(self) -> int:
        return struct.unpack("<I", self._take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self._take(8))[0]

    def u128(self) -> int:
        low = self.u64()
        high = self.u64()
        return u128_from_limbs(low, high)

    def pubkey(self) -> str:
        return base58.b58encode(self._take(PUBKEY_SIZE)).decode("ascii")

    def string(self) -> str:
        length = self.u32()
        if self._offset + length > len(self._data):
            raise MalformedRecord(
                f"{self._kind.value}: string of {length} bytes at offset "
                f"{self._offset} overruns buffer of {len(self._data)}"
            )
        raw = self._take(length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedRecord(f"{self._kind.value}: string is not UTF-8") from e


def _user_debt(r: _Reader) -> DebtRecord:
    return DebtRecord(owner=r.pubkey(), amount=r.u64())


def _user_collateral(r: _Reader) -> CollateralRecord:
    return CollateralRecord(owner=r.pubkey(), denom=r.string(), amount=r.u64())


def _liquidity_threshold(r: _Reader) -> RatioRecord:
    return RatioRecord(owner=r.pubkey(), ratio=r.u64())


def _user_stake(r: _Reader) -> StakeRecord:
    return StakeRecord(
        owner=r.pubkey(),
        amount=r.u64(),
        scale_snapshot=r.u128(),
        epoch_snapshot=r.u64(),
        last_update_block=r.u64(),
    )


def _pool_snapshot(r: _Reader) -> PoolSnapshotRecord:
    return PoolSnapshotRecord(
        denom=r.string(),
        gain_factor=r.u128(),
        total_collateral_gained=r.u64(),
        epoch=r.u64(),
    )


def _user_collateral_snapshot(r: _Reader) -> UserCollateralSnapshotRecord:
    return UserCollateralSnapshotRecord(
        owner=r.pubkey(),
        denom=r.string(),
        gain_factor_snapshot=r.u128(),
        pending_gain=r.u64(),
    )


def _protocol_state(r: _Reader) -> ProtocolStateRecord:
    return ProtocolStateRecord(
        admin=r.pubkey(),
        oracle_helper=r.pubkey(),
        oracle_state=r.pubkey(),
        fee_distributor=r.pubkey(),
        fee_state=r.pubkey(),
        minimum_collateral_ratio=r.u64(),
        protocol_fee=r.u8(),
        stable_coin_mint=r.pubkey(),
        stable_coin_code_id=r.u64(),
        total_debt_amount=r.u64(),
        total_stake_amount=r.u64(),
        scale_factor=r.u128(),
        epoch=r.u64(),
    )


_DECODERS: dict[RecordKind, Callable[[_Reader], Record]] = {
    RecordKind.USER_DEBT: _user_debt,
    RecordKind.USER_COLLATERAL: _user_collateral,
    RecordKind.LIQUIDITY_THRESHOLD: _liquidity_threshold,
    RecordKind.USER_STAKE: _user_stake,
    RecordKind.POOL_SNAPSHOT: _pool_snapshot,
    RecordKind.USER_COLLATERAL_SNAPSHOT: _user_collateral_snapshot,
    RecordKind.PROTOCOL_STATE: _protocol_state,
}


def decode(data: bytes | bytearray | memoryview, kind: RecordKind) -> Record:
    """Decode one account buffer into the record type for ``kind``.

    Raises:
        MalformedRecord: buffer shorter than the kind's minimum length, or a
            length-prefixed string runs past the end.
    """
    buf = bytes(data)
    minimum = MIN_LENGTH[kind]
    if len(buf) < minimum:
        raise MalformedRecord(
            f"{kind.value}: need at least {minimum} bytes, got {len(buf)}"
        )
    return _DECODERS[kind](_Reader(buf, kind))


def try_decode(account: RawAccount, kind: RecordKind) -> Record | None:
    """Decode an account for a batch, returning None for missing or bad data."""
    if account.data is None:
        return None
    try:
        return decode(account.data, kind)
    except MalformedRecord as e:
        logger.debug("Skipping account %s: %s", account.pubkey, e)
        return None
