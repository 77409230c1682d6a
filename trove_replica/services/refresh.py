"""Caller-owned repeating task for periodic index refreshes."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class RefreshTask:
    """Run an async callback every ``interval_seconds`` until stopped.

    The task belongs to whoever created it: nothing is scheduled until
    :meth:`start` and :meth:`stop` tears it down. A tick that raises is
    logged and the next one still runs on schedule.
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[None]],
        interval_seconds: float,
        name: str = "refresh",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._callback = callback
        self._interval = interval_seconds
        self._name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> bool:
        """Run one tick; returns False when the callback raised."""
        try:
            await self._callback()
            return True
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s tick failed", self._name)
            return False

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            await self.run_once()
            elapsed = loop.time() - started
            await asyncio.sleep(max(self._interval - elapsed, 0))

    def start(self) -> None:
        """Schedule on the running loop; no-op if already running."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self._name)
        logger.info("Started %s every %ss", self._name, self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Stopped %s", self._name)

    async def wait(self) -> None:
        """Block until the task ends (it only ends when stopped)."""
        if self._task is not None:
            await self._task
