"""
Shipment cache storage.

- ShipmentStore: abstract interface used by the cache service and the
  stale refresh job
- MemoryShipmentStore: in-process backend for development/testing

``save`` is the write protocol: upsert the shipment row by tracking number,
drop its events, insert the new events. The three steps are atomic; if any
step fails the previous row and events are left untouched.
"""

import copy
import dataclasses
import logging
import uuid
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from ..models import (
    CachedShipment,
    CachedShipmentEvent,
    CacheStats,
    ShipmentStatus,
    UnifiedShipment,
    utc_now,
)

logger = logging.getLogger(__name__)


class ShipmentStore(ABC):
    """Abstract base class for shipment cache backends"""

    @abstractmethod
    async def get(self, tracking_number: str) -> Optional[CachedShipment]:
        """Get a cached shipment with its events"""
        pass

    @abstractmethod
    async def save(self, shipment: UnifiedShipment) -> CachedShipment:
        """Upsert a shipment and replace its events atomically"""
        pass

    @abstractmethod
    async def delete(self, tracking_number: str) -> bool:
        """Delete a cached shipment and its events. Returns True if it existed"""
        pass

    @abstractmethod
    async def find_stale(
        self,
        older_than: datetime,
        exclude_statuses: Iterable[ShipmentStatus],
        limit: int,
    ) -> List[CachedShipment]:
        """Rows with updated_at before ``older_than``, oldest first, without events"""
        pass

    @abstractmethod
    async def stats(self) -> CacheStats:
        """Counts of cached shipments by status and by carrier"""
        pass

    @abstractmethod
    async def clear(self) -> int:
        """Delete every cached shipment. Returns the number removed"""
        pass

    async def close(self) -> None:
        """Close backend connections. Override in subclasses that need cleanup."""
        pass


class MemoryShipmentStore(ShipmentStore):
    """In-memory shipment store for development/testing"""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._rows: Dict[str, CachedShipment] = {}
        self._clock = clock

    async def get(self, tracking_number: str) -> Optional[CachedShipment]:
        row = self._rows.get(tracking_number)
        return copy.deepcopy(row) if row else None

    async def save(self, shipment: UnifiedShipment) -> CachedShipment:
        snapshot = copy.deepcopy(self._rows.get(shipment.tracking_number))
        try:
            row = self._upsert_row(shipment)
            self._delete_events(row)
            self._insert_events(row, shipment)
        except Exception:
            if snapshot is None:
                self._rows.pop(shipment.tracking_number, None)
            else:
                self._rows[shipment.tracking_number] = snapshot
            raise
        return copy.deepcopy(row)

    def _upsert_row(self, shipment: UnifiedShipment) -> CachedShipment:
        now = self._clock()
        row = self._rows.get(shipment.tracking_number)
        if row is None:
            row = CachedShipment(
                id=uuid.uuid4().hex,
                tracking_number=shipment.tracking_number,
                carrier=shipment.carrier,
                status=shipment.status,
                estimated_delivery=shipment.estimated_delivery,
                current_location=shipment.current_location,
                updated_at=now,
                created_at=now,
            )
            self._rows[shipment.tracking_number] = row
        else:
            row.carrier = shipment.carrier
            row.status = shipment.status
            row.estimated_delivery = shipment.estimated_delivery
            row.current_location = shipment.current_location
            row.updated_at = now
        return row

    def _delete_events(self, row: CachedShipment) -> None:
        row.events = []

    def _insert_events(self, row: CachedShipment, shipment: UnifiedShipment) -> None:
        row.events = [
            CachedShipmentEvent(
                id=uuid.uuid4().hex,
                shipment_id=row.id,
                timestamp=e.timestamp,
                location=e.location,
                description=e.description,
                status=e.status,
            )
            for e in shipment.events
        ]

    async def delete(self, tracking_number: str) -> bool:
        return self._rows.pop(tracking_number, None) is not None

    async def find_stale(
        self,
        older_than: datetime,
        exclude_statuses: Iterable[ShipmentStatus],
        limit: int,
    ) -> List[CachedShipment]:
        excluded = set(exclude_statuses)
        stale = [
            row for row in self._rows.values()
            if row.status not in excluded and row.updated_at < older_than
        ]
        stale.sort(key=lambda r: r.updated_at)
        return [dataclasses.replace(row, events=[]) for row in stale[:limit]]

    async def stats(self) -> CacheStats:
        rows = list(self._rows.values())
        return CacheStats(
            total_cached=len(rows),
            by_status=dict(Counter(r.status.value for r in rows)),
            by_carrier=dict(Counter(r.carrier.value for r in rows)),
        )

    async def clear(self) -> int:
        count = len(self._rows)
        self._rows.clear()
        return count
