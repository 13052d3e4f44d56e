"""
Local courier adapter - a simulated carrier for exercising the pipeline.

Tracking numbers start with ``LOC``. The outcome is decided by the number:

- ends with ``DEL``: DELIVERED
- ends with ``EXC``: EXCEPTION
- contains ``NOTFOUND``: 404 NOT_FOUND
- anything else: TRANSIT

Each call sleeps for a fixed latency and fails with a transient 503 at a
configurable rate, using an injectable ``random.Random`` so tests can make
both deterministic.
"""

import asyncio
import logging
import random
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

from ..constants import PROVIDER_LOCAL
from ..errors import TrackingError
from ..models import Carrier, ShipmentStatus, UnifiedShipment, utc_now
from ..normalizers import normalize_local_response
from ..tokens.cache import TokenCache
from ..tokens.store import TokenStore
from .base import CarrierAdapter

logger = logging.getLogger(__name__)

DEFAULT_LATENCY_SECONDS = 0.8
DEFAULT_FAILURE_RATE = 0.05

ORIGIN_HUB = "Local Courier Hub, Portland, OR"
DISTRIBUTION_CENTER = "Distribution Center, Seattle, WA"
DELIVERY_STATION = "Local Delivery Station, Beaverton, OR"
DELIVERY_ADDRESS = "Beaverton, OR 97005"


class SimulatedTokenCache(TokenCache):
    """Token cache whose exchange never leaves the process."""

    PROVIDER = PROVIDER_LOCAL
    TOKEN_TTL_SECONDS = 3600

    def __init__(self, store: TokenStore, **kwargs):
        kwargs.setdefault("client_id", "local-courier")
        kwargs.setdefault("client_secret", "simulated")
        super().__init__(store, **kwargs)

    async def _exchange(self, client: httpx.AsyncClient) -> Tuple[str, int]:
        return f"local-{uuid.uuid4().hex}", self.TOKEN_TTL_SECONDS


def _status_for(tracking_number: str) -> ShipmentStatus:
    if tracking_number.endswith("DEL"):
        return ShipmentStatus.DELIVERED
    if tracking_number.endswith("EXC"):
        return ShipmentStatus.EXCEPTION
    return ShipmentStatus.TRANSIT


def _event(at: datetime, location: str, description: str, status: str) -> Dict[str, Any]:
    return {
        "timestamp": at.isoformat(),
        "location": location,
        "description": description,
        "status": status,
    }


def _events_for(status: ShipmentStatus, now: datetime) -> List[Dict[str, Any]]:
    day = timedelta(days=1)
    events = [
        _event(now - 3 * day, ORIGIN_HUB, "Package received at origin facility", "RECEIVED"),
        _event(now - 2 * day, DISTRIBUTION_CENTER, "Package in transit to destination", "IN_TRANSIT"),
    ]

    if status == ShipmentStatus.DELIVERED:
        events.append(_event(now - day, DELIVERY_STATION, "Out for delivery", "OUT_FOR_DELIVERY"))
        events.append(_event(now, DELIVERY_ADDRESS, "Delivered - Left at front door", "DELIVERED"))
    elif status == ShipmentStatus.EXCEPTION:
        events.append(_event(now, DELIVERY_STATION, "Delivery exception - Address not found", "EXCEPTION"))
    else:
        events.append(_event(now - timedelta(hours=6), DELIVERY_STATION, "Arrived at local delivery station", "ARRIVED"))

    events.reverse()
    return events


def _estimated_delivery(status: ShipmentStatus, now: datetime) -> Optional[str]:
    if status == ShipmentStatus.DELIVERED:
        return None
    days = 3 if status == ShipmentStatus.EXCEPTION else 1
    return (now + timedelta(days=days)).isoformat()


class LocalCourierAdapter(CarrierAdapter):
    """
    Simulated local courier.

    Args:
        token_cache: Token cache the adapter authenticates through
            (normally a SimulatedTokenCache).
        latency_seconds: Delay applied to every call.
        failure_rate: Probability of a transient 503 per call.
        rng: Random source for the failure draw.
        clock: Source of "now" for generated event timestamps.
    """

    carrier = Carrier.LOCAL
    SERVICE_NAME = "Local Courier Service"

    def __init__(
        self,
        token_cache: TokenCache,
        latency_seconds: float = DEFAULT_LATENCY_SECONDS,
        failure_rate: float = DEFAULT_FAILURE_RATE,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be between 0 and 1, got {failure_rate}")
        self._tokens = token_cache
        self.latency_seconds = latency_seconds
        self.failure_rate = failure_rate
        self._rng = rng or random.Random()
        self._clock = clock

    async def track(self, tracking_number: str) -> Dict[str, Any]:
        cleaned = self._require_tracking_number(tracking_number)
        await self._tokens.get_token()

        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)

        if self.failure_rate > 0 and self._rng.random() < self.failure_rate:
            raise TrackingError(
                self.provider, "Temporary service unavailable", 503, "SERVICE_UNAVAILABLE"
            )

        if "NOTFOUND" in cleaned:
            raise TrackingError(
                self.provider, f"Tracking number {cleaned} not found", 404, "NOT_FOUND"
            )

        now = self._clock()
        status = _status_for(cleaned)
        events = _events_for(status, now)
        logger.info(f"Simulated tracking for {cleaned}: {status.value}")

        return {
            "trackingNumber": cleaned,
            "status": status.value,
            "estimatedDelivery": _estimated_delivery(status, now),
            "currentLocation": DELIVERY_ADDRESS if status == ShipmentStatus.DELIVERED else DELIVERY_STATION,
            "events": events,
        }

    def normalize(self, raw: Any, include_raw: bool = False) -> UnifiedShipment:
        return normalize_local_response(raw, include_raw=include_raw)

    def service_info(self) -> Dict[str, Any]:
        return {
            "name": self.SERVICE_NAME,
            "simulated": True,
            "latency_seconds": self.latency_seconds,
            "failure_rate": self.failure_rate,
        }
