"""Aerospacer account addressing — discriminators, PDAs and RPC filters.

Pure helpers, no I/O. Discriminators follow the Anchor convention
``sha256("account:<StructName>")[:8]``; per-owner accounts live at program
derived addresses seeded by a fixed label plus the owner (and denom).
"""
from __future__ import annotations

import hashlib
import struct
from typing import Any

import base58
from solders.pubkey import Pubkey

from ...ledger.decoder import DISCRIMINATOR_SIZE, PUBKEY_SIZE, RecordKind

# Collateral denom string starts right after the owner key
COLLATERAL_DENOM_OFFSET = DISCRIMINATOR_SIZE + PUBKEY_SIZE

SEED_LIQUIDITY_THRESHOLD = b"liquidity_threshold"
SEED_USER_DEBT = b"user_debt_amount"
SEED_USER_COLLATERAL = b"user_collateral_amount"
SEED_USER_STAKE = b"user_stake_amount"
SEED_POOL_SNAPSHOT = b"stability_pool_snapshot"
SEED_USER_COLLATERAL_SNAPSHOT = b"user_collateral_snapshot"
SEED_STATE = b"state"


def discriminator(kind: RecordKind) -> bytes:
    """8-byte Anchor account discriminator for a record kind."""
    return hashlib.sha256(f"account:{kind.value}".encode()).digest()[:DISCRIMINATOR_SIZE]


def discriminator_filter(kind: RecordKind) -> dict[str, Any]:
    """``memcmp`` filter matching every account of ``kind``."""
    return {
        "memcmp": {
            "offset": 0,
            "bytes": base58.b58encode(discriminator(kind)).decode("ascii"),
        }
    }


def denom_filter(denom: str) -> dict[str, Any]:
    """``memcmp`` filter on the length-prefixed denom of collateral accounts."""
    raw = denom.encode("utf-8")
    return {
        "memcmp": {
            "offset": COLLATERAL_DENOM_OFFSET,
            "bytes": base58.b58encode(struct.pack("<I", len(raw)) + raw).decode("ascii"),
        }
    }


def _pda(program_id: str, *seeds: bytes) -> str:
    address, _bump = Pubkey.find_program_address(
        list(seeds), Pubkey.from_string(program_id)
    )
    return str(address)


def _owner_bytes(owner: str) -> bytes:
    return bytes(Pubkey.from_string(owner))


def liquidity_threshold_address(program_id: str, owner: str) -> str:
    """Ratio account of ``owner``; this is the id used in neighbor hints."""
    return _pda(program_id, SEED_LIQUIDITY_THRESHOLD, _owner_bytes(owner))


def user_debt_address(program_id: str, owner: str) -> str:
    return _pda(program_id, SEED_USER_DEBT, _owner_bytes(owner))


def user_collateral_address(program_id: str, owner: str, denom: str) -> str:
    return _pda(program_id, SEED_USER_COLLATERAL, _owner_bytes(owner), denom.encode())


def user_stake_address(program_id: str, owner: str) -> str:
    return _pda(program_id, SEED_USER_STAKE, _owner_bytes(owner))


def pool_snapshot_address(program_id: str, denom: str) -> str:
    return _pda(program_id, SEED_POOL_SNAPSHOT, denom.encode())


def user_collateral_snapshot_address(program_id: str, owner: str, denom: str) -> str:
    return _pda(
        program_id, SEED_USER_COLLATERAL_SNAPSHOT, _owner_bytes(owner), denom.encode()
    )


def state_address(program_id: str) -> str:
    return _pda(program_id, SEED_STATE)
