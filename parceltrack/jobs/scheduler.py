"""RefreshScheduler - runs the stale refresh job on a fixed interval."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from ..constants import REFRESH_INTERVAL_SECONDS
from ..models import RefreshResult, utc_now
from .refresh import StaleRefreshJob

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """
    Timer loop around a StaleRefreshJob.

    The first run happens one interval after ``start()``. ``run_now()``
    triggers a run immediately; runs never overlap.
    """

    def __init__(
        self,
        job: StaleRefreshJob,
        interval_seconds: float = REFRESH_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._job = job
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._running = False
        self._loop_task: Optional[asyncio.Task] = None
        self._wake = asyncio.Event()
        self._run_lock = asyncio.Lock()

        self.run_count = 0
        self.last_run_at: Optional[datetime] = None
        self.last_result: Optional[RefreshResult] = None
        self.last_error: Optional[str] = None

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the timer loop."""
        if self._running:
            return
        self._running = True
        self._loop_task = asyncio.create_task(self._timer_loop())
        logger.info(f"RefreshScheduler started (every {self.interval_seconds:g}s)")

    async def stop(self) -> None:
        """Stop the timer loop."""
        self._running = False
        self._wake.set()  # wake the loop so it can exit
        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        logger.info("RefreshScheduler stopped")

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    async def run_now(self) -> RefreshResult:
        """Run the job once and record the outcome. Errors propagate to the caller."""
        async with self._run_lock:
            self.last_run_at = self._clock()
            self.run_count += 1
            try:
                result = await self._job.run()
            except Exception as e:
                self.last_error = str(e)
                raise
            self.last_result = result
            self.last_error = None
            return result

    def status(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "interval_seconds": self.interval_seconds,
            "run_count": self.run_count,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_result": self.last_result.to_dict() if self.last_result else None,
            "last_error": self.last_error,
        }

    # ------------------------------------------------------------------
    # Timer loop
    # ------------------------------------------------------------------

    async def _timer_loop(self) -> None:
        while self._running:
            try:
                await self._tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Stale refresh run failed: {e}", exc_info=True)

    async def _tick(self) -> None:
        # Sleep, but wake immediately if _wake event is set
        self._wake.clear()
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=self.interval_seconds)
        except asyncio.TimeoutError:
            pass

        if not self._running:
            return

        await self.run_now()
