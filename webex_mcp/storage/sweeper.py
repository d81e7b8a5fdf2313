"""Background expiry sweeper owned by a store or cache instance."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicSweeper:
    """Runs an async callback every ``interval`` seconds until stopped.

    Shutdown is signalled through an event rather than task cancellation so
    a sweep that is already running finishes before ``stop()`` returns.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[int]],
    ):
        self.name = name
        self.interval = interval
        self._callback = callback
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep loop on the running event loop (idempotent)."""
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name=f"{self.name}-sweeper")
        logger.debug("%s sweeper started (interval=%ss)", self.name, self.interval)

    async def stop(self) -> None:
        """Signal the loop to exit and wait for it."""
        if self._task is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        logger.debug("%s sweeper stopped", self.name)

    async def _run(self) -> None:
        while True:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
                return
            except asyncio.TimeoutError:
                pass

            try:
                removed = await self._callback()
            except Exception as e:
                # A failed sweep is retried on the next tick
                logger.warning("%s sweep failed: %s", self.name, e)
                continue
            if removed:
                logger.debug("%s sweep removed %d expired entries", self.name, removed)
