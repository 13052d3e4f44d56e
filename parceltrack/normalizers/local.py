"""Normalizer for the simulated local courier payload."""

from typing import Any

from ..constants import UNKNOWN_LOCATION, UNKNOWN_TRACKING_NUMBER
from ..models import Carrier, ShipmentEvent, ShipmentStatus, UnifiedShipment
from .common import as_dict, as_list, newest_first, parse_iso, parse_iso_or_now, text


def normalize_local_response(raw: Any, include_raw: bool = False) -> UnifiedShipment:
    document = as_dict(raw)

    events = newest_first([
        ShipmentEvent(
            timestamp=parse_iso_or_now(e.get("timestamp")),
            location=text(e.get("location"), UNKNOWN_LOCATION),
            description=text(e.get("description"), "Status update"),
            status=text(e.get("status"), "UNKNOWN"),
        )
        for e in (as_dict(item) for item in as_list(document.get("events")))
    ])

    return UnifiedShipment(
        tracking_number=text(document.get("trackingNumber"), UNKNOWN_TRACKING_NUMBER),
        carrier=Carrier.LOCAL,
        status=ShipmentStatus.parse(document.get("status")),
        estimated_delivery=parse_iso(document.get("estimatedDelivery")),
        current_location=text(document.get("currentLocation")),
        events=events,
        raw=raw if include_raw else None,
    )
