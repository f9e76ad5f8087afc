"""Scheduled cleanup of expired rate limit records."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from app.adapters.rate_limit.base import AbstractRateLimiter

logger = logging.getLogger(__name__)


class PeriodicSweeper:
    """Run ``limiter.sweep()`` every ``interval_seconds`` on the event loop.

    Sweeping is cheap and never blocks on I/O, so it runs inline on the loop
    rather than in a thread.
    """

    def __init__(self, limiter: AbstractRateLimiter, *, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._limiter = limiter
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop.

        Calling it again while the loop is running does nothing.

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("rate_limit.sweeper_started", extra={"interval_s": self._interval})

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("rate_limit.sweeper_stopped")

    async def _run(self) -> None:
        """Sweep once per interval until cancelled.

        A failing sweep is logged and the loop keeps going.
        """
        while True:
            await asyncio.sleep(self._interval)
            try:
                self._limiter.sweep()
            except Exception:
                logger.exception("rate_limit.sweep_failed")
