"""
ParcelTrack data models.

- UnifiedShipment / ShipmentEvent: carrier-agnostic tracking result
- CachedShipment / CachedShipmentEvent: persisted cache rows
- SystemToken: persisted OAuth bearer token, one per provider
- CacheStats / RefreshResult: aggregate results
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .constants import UNKNOWN_LOCATION


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class Carrier(str, Enum):
    """Carriers the router can classify a tracking number as.

    FEDEX is routable (generic numeric fallback) but has no adapter yet.
    """
    UPS = "UPS"
    USPS = "USPS"
    LOCAL = "LOCAL"
    FEDEX = "FEDEX"


class ShipmentStatus(str, Enum):
    PENDING = "PENDING"
    TRANSIT = "TRANSIT"
    DELIVERED = "DELIVERED"
    EXCEPTION = "EXCEPTION"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> "ShipmentStatus":
        """Coerce a stored value back into the enum, UNKNOWN if unrecognized."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.UNKNOWN


# Statuses after which no further change is expected.
TERMINAL_STATUSES = frozenset({ShipmentStatus.DELIVERED})

# Statuses the stale refresh job never picks up.
REFRESH_SKIP_STATUSES = frozenset({ShipmentStatus.DELIVERED, ShipmentStatus.UNKNOWN})


@dataclass
class ShipmentEvent:
    """A single scan/activity reported by a carrier."""
    timestamp: datetime
    location: str
    description: str
    status: str  # carrier-local code, opaque to the cache layer

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": _iso(self.timestamp),
            "location": self.location,
            "description": self.description,
            "status": self.status,
        }


@dataclass
class UnifiedShipment:
    """Carrier-agnostic tracking result."""
    tracking_number: str
    carrier: Carrier
    status: ShipmentStatus
    estimated_delivery: Optional[datetime] = None
    current_location: Optional[str] = None
    events: List[ShipmentEvent] = field(default_factory=list)
    raw: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "tracking_number": self.tracking_number,
            "carrier": self.carrier.value,
            "status": self.status.value,
            "estimated_delivery": _iso(self.estimated_delivery),
            "current_location": self.current_location,
            "events": [e.to_dict() for e in self.events],
        }
        if self.raw is not None:
            d["raw"] = self.raw
        return d


@dataclass
class CachedShipmentEvent:
    """Persisted event row belonging to a CachedShipment."""
    shipment_id: str
    timestamp: datetime
    location: Optional[str]
    description: str
    status: str
    id: Optional[str] = None

    def to_event(self) -> ShipmentEvent:
        return ShipmentEvent(
            timestamp=self.timestamp,
            location=self.location or UNKNOWN_LOCATION,
            description=self.description,
            status=self.status,
        )


@dataclass
class CachedShipment:
    """Persisted cache row keyed by normalized tracking number."""
    id: str
    tracking_number: str
    carrier: Carrier
    status: ShipmentStatus
    estimated_delivery: Optional[datetime]
    current_location: Optional[str]
    updated_at: datetime
    created_at: Optional[datetime] = None
    events: List[CachedShipmentEvent] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_unified(self) -> UnifiedShipment:
        """Map persisted rows back to a UnifiedShipment (cache hit path)."""
        events = sorted(
            (e.to_event() for e in self.events),
            key=lambda e: e.timestamp,
            reverse=True,
        )
        return UnifiedShipment(
            tracking_number=self.tracking_number,
            carrier=self.carrier,
            status=self.status,
            estimated_delivery=self.estimated_delivery,
            current_location=self.current_location,
            events=events,
        )


@dataclass
class SystemToken:
    """Persisted OAuth bearer token for a provider."""
    provider: str
    token: str
    expires_at: datetime


@dataclass
class CacheStats:
    total_cached: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    by_carrier: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_cached": self.total_cached,
            "by_status": dict(self.by_status),
            "by_carrier": dict(self.by_carrier),
        }


@dataclass
class RefreshResult:
    """Aggregate outcome of one stale refresh run."""
    refreshed: int = 0
    errors: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"refreshed": self.refreshed, "errors": self.errors}
