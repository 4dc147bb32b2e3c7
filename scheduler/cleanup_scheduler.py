"""
Token Cleanup Scheduler
Periodic best-effort sweep of expired security tokens
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional

from monitoring.metrics import record_cleanup

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = timedelta(hours=12)


class PeriodicCleanupScheduler:
    """
    Runs a cleanup coroutine immediately and then on a fixed interval.

    A failed pass is logged and the next tick runs as usual. stop() is a
    single-call contract; repeated calls are logged and ignored.
    """

    def __init__(
        self,
        clock,
        cleanup: Callable[[], Awaitable[Any]],
        interval: timedelta = DEFAULT_INTERVAL,
    ):
        if interval <= timedelta(0):
            raise ValueError("Cleanup interval must be positive")

        self.clock = clock
        self.cleanup = cleanup
        self.interval = interval
        self._stop_event = threading.Event()
        self._ticker = None

        self.runs = 0
        self.last_run_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

    def start(self) -> None:
        """Arm the ticker; the first pass runs right away."""
        if self._ticker is not None:
            logger.warning("Token cleanup scheduler already started")
            return

        self._stop_event.clear()
        self._ticker = self.clock.call_every(
            self.interval,
            self._tick,
            name="token_cleanup",
            first_delay=timedelta(0),
        )
        logger.info(f"Token cleanup scheduler started (interval={self.interval})")

    def stop(self) -> None:
        """Signal the loop to exit and cancel the ticker."""
        if self._stop_event.is_set():
            logger.warning("Token cleanup scheduler stop() called more than once")
            return

        self._stop_event.set()
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        logger.info("Token cleanup scheduler stopped")

    @property
    def running(self) -> bool:
        return self._ticker is not None and not self._stop_event.is_set()

    async def _tick(self) -> None:
        """Run one cleanup pass unless stopped."""
        if self._stop_event.is_set():
            return

        self.runs += 1
        self.last_run_at = self.clock.now()

        try:
            deleted = await self.cleanup()
        except Exception as e:
            self.last_error = str(e)
            record_cleanup("failed")
            logger.error(f"Error cleaning up expired tokens: {e}")
            return

        self.last_error = None
        record_cleanup("ok", deleted if isinstance(deleted, dict) else None)
        logger.info(f"Expired token cleanup completed: {deleted}")
