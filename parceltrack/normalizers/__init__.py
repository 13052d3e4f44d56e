"""
ParcelTrack normalizers - carrier payloads to UnifiedShipment.

Each normalizer is total: it accepts any decoded JSON value and never raises.
"""

from .local import normalize_local_response
from .ups import map_ups_status, normalize_ups_response
from .usps import map_usps_status, normalize_usps_response

__all__ = [
    "normalize_ups_response",
    "normalize_usps_response",
    "normalize_local_response",
    "map_ups_status",
    "map_usps_status",
]
