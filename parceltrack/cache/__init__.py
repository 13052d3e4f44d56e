"""
ParcelTrack shipment cache.

- ShipmentCacheService: cache-aside lookups over the carrier adapters
- ShipmentStore / MemoryShipmentStore / PostgresShipmentStore: backends
"""

from .postgres import PostgresShipmentStore
from .service import ShipmentCacheService
from .store import MemoryShipmentStore, ShipmentStore

__all__ = [
    "ShipmentCacheService",
    "ShipmentStore",
    "MemoryShipmentStore",
    "PostgresShipmentStore",
]
