"""Notifier protocol — alert channel abstraction."""
from typing import Protocol


class Notifier(Protocol):
    """Channel for trove alerts (loud) and refresh logs (quiet)."""

    async def send_alert(self, message: str, subject: str = "") -> bool: ...

    async def send_log(self, message: str, silent: bool = True) -> bool: ...
