"""
ParcelTrack - multi-carrier parcel tracking with a cache-aside shipment store.

    from parceltrack import ParcelTrack

    app = ParcelTrack("config.yaml")
    await app.initialize()
    shipment = await app.service.get_shipment("1Z999AA10123456784")
"""

from .app import ParcelTrack
from .cache import ShipmentCacheService
from .errors import (
    AuthError,
    CarrierUndetermined,
    ParcelTrackError,
    TrackingError,
    UnsupportedCarrier,
)
from .models import Carrier, ShipmentEvent, ShipmentStatus, UnifiedShipment
from .router import detect_carrier

__version__ = "0.1.0"

__all__ = [
    "ParcelTrack",
    "ShipmentCacheService",
    "Carrier",
    "ShipmentStatus",
    "ShipmentEvent",
    "UnifiedShipment",
    "detect_carrier",
    "ParcelTrackError",
    "AuthError",
    "TrackingError",
    "CarrierUndetermined",
    "UnsupportedCarrier",
]
