"""ParcelTrack carriers - per-carrier tracking adapters and the adapter registry."""

from .base import AdapterRegistry, CarrierAdapter, HttpCarrierAdapter
from .local import LocalCourierAdapter, SimulatedTokenCache
from .ups import UpsAdapter
from .usps import UspsAdapter

__all__ = [
    "CarrierAdapter",
    "HttpCarrierAdapter",
    "AdapterRegistry",
    "UpsAdapter",
    "UspsAdapter",
    "LocalCourierAdapter",
    "SimulatedTokenCache",
]
