"""
PostgreSQL shipment cache.

Tables: cached_shipments, cached_shipment_events (see db.initialize).
The write protocol runs inside one transaction on a single connection.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional

from ..db import Database, Repository
from ..models import (
    Carrier,
    CachedShipment,
    CachedShipmentEvent,
    CacheStats,
    ShipmentStatus,
    UnifiedShipment,
    utc_now,
)
from .store import ShipmentStore

logger = logging.getLogger(__name__)

_SHIPMENT_COLUMNS = (
    "id, tracking_number, carrier, status, estimated_delivery, "
    "current_location, created_at, updated_at"
)

_UPSERT_SQL = f"""
INSERT INTO cached_shipments
    (tracking_number, carrier, status, estimated_delivery, current_location, created_at, updated_at)
VALUES ($1, $2, $3, $4, $5, $6, $6)
ON CONFLICT (tracking_number) DO UPDATE SET
    carrier = EXCLUDED.carrier,
    status = EXCLUDED.status,
    estimated_delivery = EXCLUDED.estimated_delivery,
    current_location = EXCLUDED.current_location,
    updated_at = EXCLUDED.updated_at
RETURNING {_SHIPMENT_COLUMNS}
"""

_INSERT_EVENT_SQL = """
INSERT INTO cached_shipment_events (shipment_id, timestamp, location, description, status)
VALUES ($1, $2, $3, $4, $5)
"""


class PostgresShipmentStore(Repository, ShipmentStore):
    """
    Shipment cache on PostgreSQL.

    Table: cached_shipments
    Unique key: tracking_number
    """

    TABLE_NAME = "cached_shipments"

    def __init__(self, db: Database, clock: Callable[[], datetime] = utc_now):
        super().__init__(db)
        self._clock = clock

    async def get(self, tracking_number: str) -> Optional[CachedShipment]:
        row = await self.db.fetchrow(
            f"SELECT {_SHIPMENT_COLUMNS} FROM cached_shipments WHERE tracking_number = $1",
            tracking_number,
        )
        if not row:
            return None

        event_rows = await self.db.fetch(
            """
            SELECT id, shipment_id, timestamp, location, description, status
            FROM cached_shipment_events
            WHERE shipment_id = $1
            ORDER BY timestamp DESC
            """,
            row["id"],
        )
        shipment = self._row_to_shipment(row)
        shipment.events = [self._row_to_event(r) for r in event_rows]
        return shipment

    async def save(self, shipment: UnifiedShipment) -> CachedShipment:
        async with self.db.transaction() as conn:
            row = await conn.fetchrow(
                _UPSERT_SQL,
                shipment.tracking_number,
                shipment.carrier.value,
                shipment.status.value,
                shipment.estimated_delivery,
                shipment.current_location,
                self._clock(),
            )
            await conn.execute(
                "DELETE FROM cached_shipment_events WHERE shipment_id = $1",
                row["id"],
            )
            if shipment.events:
                await conn.executemany(
                    _INSERT_EVENT_SQL,
                    [
                        (row["id"], e.timestamp, e.location, e.description, e.status)
                        for e in shipment.events
                    ],
                )

        cached = self._row_to_shipment(row)
        cached.events = [
            CachedShipmentEvent(
                shipment_id=cached.id,
                timestamp=e.timestamp,
                location=e.location,
                description=e.description,
                status=e.status,
            )
            for e in shipment.events
        ]
        return cached

    async def delete(self, tracking_number: str) -> bool:
        result = await self.db.execute(
            "DELETE FROM cached_shipments WHERE tracking_number = $1",
            tracking_number,
        )
        return self._affected(result) > 0

    async def find_stale(
        self,
        older_than: datetime,
        exclude_statuses: Iterable[ShipmentStatus],
        limit: int,
    ) -> List[CachedShipment]:
        rows = await self.db.fetch(
            f"""
            SELECT {_SHIPMENT_COLUMNS} FROM cached_shipments
            WHERE status <> ALL($1::text[]) AND updated_at < $2
            ORDER BY updated_at ASC
            LIMIT $3
            """,
            [s.value for s in exclude_statuses],
            older_than,
            limit,
        )
        return [self._row_to_shipment(r) for r in rows]

    async def stats(self) -> CacheStats:
        total = await self.db.fetchval("SELECT COUNT(*) FROM cached_shipments")
        by_status = await self.db.fetch(
            "SELECT status, COUNT(*) AS n FROM cached_shipments GROUP BY status"
        )
        by_carrier = await self.db.fetch(
            "SELECT carrier, COUNT(*) AS n FROM cached_shipments GROUP BY carrier"
        )
        return CacheStats(
            total_cached=total or 0,
            by_status={r["status"]: r["n"] for r in by_status},
            by_carrier={r["carrier"]: r["n"] for r in by_carrier},
        )

    async def clear(self) -> int:
        result = await self.db.execute("DELETE FROM cached_shipments")
        return self._affected(result)

    @staticmethod
    def _row_to_shipment(row: Any) -> CachedShipment:
        return CachedShipment(
            id=str(row["id"]),
            tracking_number=row["tracking_number"],
            carrier=Carrier(row["carrier"]),
            status=ShipmentStatus.parse(row["status"]),
            estimated_delivery=row["estimated_delivery"],
            current_location=row["current_location"],
            updated_at=row["updated_at"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_event(row: Any) -> CachedShipmentEvent:
        return CachedShipmentEvent(
            id=str(row["id"]),
            shipment_id=str(row["shipment_id"]),
            timestamp=row["timestamp"],
            location=row["location"],
            description=row["description"],
            status=row["status"],
        )
