"""Solana JSON-RPC client with endpoint fallback."""
from __future__ import annotations

import base64
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import ChainConfig
from ...models import RawAccount

logger = logging.getLogger(__name__)


class SolanaClient:
    """Solana RPC client with automatic endpoint fallback.

    Account data is requested base64-encoded and returned as raw bytes in
    :class:`RawAccount`; an account that does not exist comes back with
    ``data=None`` instead of raising.
    """

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.commitment = config.commitment
        self.batch_size = max(config.batch_size, 1)
        self.current_rpc_index = 0

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call with fallback to alternative endpoints."""
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json()
                        if "error" in result:
                            raise RuntimeError(f"RPC Error: {result['error']}")

                        if rpc_index != self.current_rpc_index:
                            logger.info("Switched to RPC endpoint: %s", rpc_url)
                            self.current_rpc_index = rpc_index

                        return result.get("result")
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

        raise RuntimeError(f"All RPC endpoints failed. Last error: {last_error}")

    @staticmethod
    def _account_data(account: dict[str, Any] | None) -> bytes | None:
        """Decode the ``data`` field of an account info object."""
        if account is None:
            return None
        data = account.get("data")
        if isinstance(data, list) and data:
            return base64.b64decode(data[0])
        if isinstance(data, str):
            return base64.b64decode(data)
        return None

    async def get_program_accounts(
        self, program_id: str, filters: list[dict[str, Any]]
    ) -> list[RawAccount]:
        """All accounts owned by ``program_id`` matching the given filters."""
        result = await self.rpc_call(
            "getProgramAccounts",
            [
                program_id,
                {
                    "encoding": "base64",
                    "commitment": self.commitment,
                    "filters": filters,
                },
            ],
        )

        accounts = [
            RawAccount(
                pubkey=item["pubkey"],
                data=self._account_data(item.get("account")),
            )
            for item in result or []
        ]
        logger.debug("getProgramAccounts returned %d accounts", len(accounts))
        return accounts

    async def get_multiple_accounts(self, pubkeys: list[str]) -> list[RawAccount]:
        """Fetch accounts in batches, preserving input order."""
        accounts: list[RawAccount] = []

        for start in range(0, len(pubkeys), self.batch_size):
            batch = pubkeys[start:start + self.batch_size]
            result = await self.rpc_call(
                "getMultipleAccounts",
                [batch, {"encoding": "base64", "commitment": self.commitment}],
            )
            values = (result or {}).get("value") or []
            if len(values) != len(batch):
                raise RuntimeError(
                    f"getMultipleAccounts returned {len(values)} entries "
                    f"for {len(batch)} keys"
                )
            for pubkey, value in zip(batch, values):
                accounts.append(RawAccount(pubkey=pubkey, data=self._account_data(value)))

        return accounts

    async def get_account(self, pubkey: str) -> RawAccount:
        """Single account; missing accounts come back with ``data=None``."""
        result = await self.rpc_call(
            "getAccountInfo",
            [pubkey, {"encoding": "base64", "commitment": self.commitment}],
        )
        value = (result or {}).get("value")
        return RawAccount(pubkey=pubkey, data=self._account_data(value))
