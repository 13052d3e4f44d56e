"""
Stale refresh job.

Picks the oldest cached shipments that are neither DELIVERED nor UNKNOWN
and have not been refreshed recently, and refetches them one by one.
Failures are counted, never fatal to the run.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable

from ..cache.service import ShipmentCacheService
from ..constants import REFRESH_BATCH_SIZE, STALE_THRESHOLD
from ..models import REFRESH_SKIP_STATUSES, RefreshResult, utc_now

logger = logging.getLogger(__name__)


class StaleRefreshJob:
    """One batch of stale-cache refreshes per ``run()`` call."""

    def __init__(
        self,
        service: ShipmentCacheService,
        stale_after: timedelta = STALE_THRESHOLD,
        batch_size: int = REFRESH_BATCH_SIZE,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._service = service
        self.stale_after = stale_after
        self.batch_size = batch_size
        self._clock = clock

    async def run(self) -> RefreshResult:
        result = RefreshResult()
        cutoff = self._clock() - self.stale_after

        stale = await self._service.store.find_stale(
            older_than=cutoff,
            exclude_statuses=REFRESH_SKIP_STATUSES,
            limit=self.batch_size,
        )
        if not stale:
            logger.info("Stale refresh: nothing to refresh")
            return result

        logger.info(f"Stale refresh: {len(stale)} shipment(s) to refresh")

        for row in stale:
            try:
                logger.info(f"Refreshing {row.tracking_number} (last updated {row.updated_at.isoformat()})")
                await self._service.refresh_shipment(row.tracking_number)
                result.refreshed += 1
            except Exception as e:
                result.errors += 1
                logger.warning(f"Failed to refresh {row.tracking_number}: {e}")

        logger.info(f"Stale refresh complete: {result.refreshed} refreshed, {result.errors} errors")
        return result
