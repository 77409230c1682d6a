"""Chain client protocol — blockchain RPC abstraction."""
from typing import Any, Protocol

from ..models import RawAccount


class ChainClient(Protocol):
    """Abstract interface for account-level chain reads."""

    async def get_program_accounts(
        self, program_id: str, filters: list[dict[str, Any]]
    ) -> list[RawAccount]: ...

    async def get_multiple_accounts(self, pubkeys: list[str]) -> list[RawAccount]: ...

    async def get_account(self, pubkey: str) -> RawAccount: ...
