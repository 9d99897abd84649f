"""
Periodic session expiry check.

ExpiryWatch owns a single asyncio task. Every interval it asks its owner to
recompute the remaining session time and, inside the refresh window,
triggers a refresh. Ticks run sequentially on one task, so they never
overlap. The owner starts the watch when a session appears and stops it
when the session is cleared.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_CHECK_INTERVAL = timedelta(minutes=1)
DEFAULT_REFRESH_THRESHOLD = timedelta(hours=1)


def in_refresh_window(remaining: timedelta, threshold: timedelta) -> bool:
    """True when the session is still valid but expires within the threshold."""
    return timedelta(0) < remaining < threshold


class ExpiryWatch:
    """
    Recurring check bound to the lifetime of one session.

    Args:
        tick: Coroutine run on every interval
        interval: Time between ticks
    """

    def __init__(
        self,
        tick: Callable[[], Awaitable[None]],
        interval: timedelta = DEFAULT_CHECK_INTERVAL,
    ):
        self._tick = tick
        self._interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking; a running watch keeps its current schedule."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("Session expiry watch started")

    def stop(self) -> None:
        """Cancel the ticking task, if any."""
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        logger.debug("Session expiry watch stopped")

    async def _run(self) -> None:
        interval = self._interval.total_seconds()
        while True:
            await asyncio.sleep(interval)
            try:
                await self._tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Session expiry check failed")
