"""Protocol adapter — trove index over one lending protocol."""
from typing import Protocol

from ..models import Position


class ProtocolAdapter(Protocol):
    """Abstract interface for building the sorted trove index of a denom."""

    @property
    def protocol_name(self) -> str: ...

    async def fetch_positions(
        self, denom: str, price_usd: float | None = None
    ) -> list[Position]: ...
