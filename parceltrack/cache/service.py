"""
Shipment Cache Service - cache-aside tracking lookups.

Reads go to the shipment store first. A cached row is served while it is
valid (DELIVERED forever, anything else for the TTL); otherwise the routed
carrier adapter is called, the result normalized and written back, and the
fresh shipment returned.

Usage:
    service = ShipmentCacheService(store, registry)
    shipment = await service.get_shipment("1Z999AA10123456784")
"""

import asyncio
import dataclasses
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from ..carriers.base import AdapterRegistry, CarrierAdapter
from ..constants import CACHE_TTL
from ..errors import CarrierUndetermined
from ..models import CachedShipment, CacheStats, Carrier, UnifiedShipment, utc_now
from ..router import detect_carrier, normalize_tracking_number
from .store import ShipmentStore

logger = logging.getLogger(__name__)


class ShipmentCacheService:
    """
    Cache-aside front for the carrier adapters.

    Args:
        store: Shipment cache backend.
        adapters: Registry of carrier adapters.
        ttl: How long a non-terminal row is served without refetching.
        clock: Returns the current aware UTC datetime.
        dedupe_inflight: Coalesce concurrent misses for the same tracking
            number onto one upstream call.
    """

    def __init__(
        self,
        store: ShipmentStore,
        adapters: AdapterRegistry,
        ttl: timedelta = CACHE_TTL,
        clock: Callable[[], datetime] = utc_now,
        dedupe_inflight: bool = False,
    ):
        self._store = store
        self._adapters = adapters
        self._ttl = ttl
        self._clock = clock
        self._dedupe_inflight = dedupe_inflight
        self._inflight: Dict[str, "asyncio.Future[UnifiedShipment]"] = {}

    @property
    def store(self) -> ShipmentStore:
        return self._store

    @property
    def adapters(self) -> AdapterRegistry:
        return self._adapters

    def is_valid(self, row: CachedShipment) -> bool:
        """Terminal rows never expire; others are valid while younger than the TTL."""
        if row.is_terminal:
            return True
        return self._clock() - row.updated_at < self._ttl

    def detect_carrier(self, tracking_number: str) -> Optional[Carrier]:
        return detect_carrier(tracking_number)

    async def get_shipment(self, tracking_number: str, include_raw: bool = False) -> UnifiedShipment:
        """
        Get a shipment, from cache when valid.

        ``include_raw`` always goes upstream so the raw payload is present.

        Raises:
            CarrierUndetermined: no routing rule matches
            UnsupportedCarrier: the routed carrier has no adapter
            TrackingError / AuthError: upstream failure on a miss
        """
        key = normalize_tracking_number(tracking_number)
        adapter = self._resolve(key)

        if not include_raw:
            cached = await self._store.get(key)
            if cached and self.is_valid(cached):
                logger.info(f"Cache HIT for {key}")
                return cached.to_unified()

        logger.info(f"Cache MISS for {key}")
        return await self._fetch_and_store(key, adapter, include_raw)

    async def refresh_shipment(self, tracking_number: str, include_raw: bool = False) -> UnifiedShipment:
        """Fetch from the carrier and overwrite the cache regardless of validity."""
        key = normalize_tracking_number(tracking_number)
        adapter = self._resolve(key)
        return await self._fetch_and_store(key, adapter, include_raw)

    async def invalidate_cache(self, tracking_number: str) -> bool:
        """Delete the cached row and its events. Missing rows are a no-op."""
        key = normalize_tracking_number(tracking_number)
        removed = await self._store.delete(key)
        logger.info(f"Cache INVALIDATED for {key}")
        return removed

    async def get_cache_stats(self) -> CacheStats:
        return await self._store.stats()

    async def fetch_raw(self, tracking_number: str) -> bytes:
        """Raw carrier payload for debugging. Never reads or writes the cache."""
        key = normalize_tracking_number(tracking_number)
        adapter = self._resolve(key)
        return await adapter.track_raw(key)

    def _resolve(self, key: str) -> CarrierAdapter:
        carrier = detect_carrier(key)
        if carrier is None:
            raise CarrierUndetermined(key)
        return self._adapters.get(carrier)

    async def _fetch_and_store(
        self, key: str, adapter: CarrierAdapter, include_raw: bool
    ) -> UnifiedShipment:
        if not self._dedupe_inflight or include_raw:
            return await self._fetch(key, adapter, include_raw)

        future = self._inflight.get(key)
        if future is None:
            future = asyncio.ensure_future(self._fetch(key, adapter, False))
            self._inflight[key] = future
            future.add_done_callback(lambda _: self._inflight.pop(key, None))
        else:
            logger.debug(f"Joining in-flight fetch for {key}")
        return await asyncio.shield(future)

    async def _fetch(self, key: str, adapter: CarrierAdapter, include_raw: bool) -> UnifiedShipment:
        fresh = await adapter.fetch_shipment(key, include_raw=include_raw)
        fresh = dataclasses.replace(fresh, tracking_number=key)
        await self._store.save(dataclasses.replace(fresh, raw=None))
        logger.info(f"Cache UPDATED for {key}")
        return fresh
