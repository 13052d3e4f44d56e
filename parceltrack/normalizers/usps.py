"""USPS Tracking v3 response normalizer."""

from typing import Any, Dict

from ..constants import UNKNOWN_TRACKING_NUMBER
from ..models import Carrier, ShipmentEvent, ShipmentStatus, UnifiedShipment
from .common import (
    as_dict,
    as_list,
    is_foreign,
    join_location,
    newest_first,
    parse_iso,
    parse_iso_or_now,
    text,
    upper,
)


def map_usps_status(status_category: Any, status: Any) -> ShipmentStatus:
    """Map USPS ``statusCategory``/``status`` text to a ShipmentStatus."""
    category = upper(status_category)
    text = upper(status)

    if category == "DELIVERED" or "DELIVERED" in text:
        return ShipmentStatus.DELIVERED
    if "TRANSIT" in category or "TRANSIT" in text or "OUT FOR DELIVERY" in text:
        return ShipmentStatus.TRANSIT
    if category == "ALERT" or "EXCEPTION" in text or "UNDELIVERABLE" in text:
        return ShipmentStatus.EXCEPTION
    if "PRE-SHIPMENT" in category or "LABEL CREATED" in text:
        return ShipmentStatus.PENDING
    return ShipmentStatus.UNKNOWN


def format_usps_location(event: Dict[str, Any]) -> str:
    country = event.get("eventCountry")
    return join_location([
        event.get("eventCity"),
        event.get("eventState"),
        event.get("eventZIPCode"),
        country if is_foreign(country) else None,
    ])


def _to_event(event: Dict[str, Any]) -> ShipmentEvent:
    return ShipmentEvent(
        timestamp=parse_iso_or_now(event.get("eventTimestamp")),
        location=format_usps_location(event),
        description=text(event.get("eventType"), event.get("additionalInfo"), "Status update"),
        status=text(event.get("eventCode"), event.get("eventType"), "UNKNOWN"),
    )


def normalize_usps_response(raw: Any, include_raw: bool = False) -> UnifiedShipment:
    """Normalize a raw USPS tracking response; events are returned newest first."""
    document = as_dict(raw)
    info = as_dict(document.get("trackingInfo"))

    if not info:
        return UnifiedShipment(
            tracking_number=text(document.get("trackingNumber"), UNKNOWN_TRACKING_NUMBER),
            carrier=Carrier.USPS,
            status=ShipmentStatus.UNKNOWN,
            raw=raw if include_raw else None,
        )

    events = newest_first([_to_event(as_dict(e)) for e in as_list(info.get("trackingEvents"))])

    return UnifiedShipment(
        tracking_number=text(
            info.get("trackingNumber"),
            document.get("trackingNumber"),
            UNKNOWN_TRACKING_NUMBER,
        ),
        carrier=Carrier.USPS,
        status=map_usps_status(info.get("statusCategory"), info.get("status")),
        estimated_delivery=parse_iso(info.get("expectedDeliveryTimestamp")),
        current_location=events[0].location if events else None,
        events=events,
        raw=raw if include_raw else None,
    )
