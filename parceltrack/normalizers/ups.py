"""
UPS response normalizer.

Maps the UPS Track API v1 ``trackResponse`` document to a UnifiedShipment.
Only the first shipment and its first package are considered.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..constants import UNKNOWN_TRACKING_NUMBER
from ..models import Carrier, ShipmentEvent, ShipmentStatus, UnifiedShipment, utc_now
from .common import (
    as_dict,
    as_list,
    is_foreign,
    join_location,
    newest_first,
    text,
    upper,
)

_DELIVERY_DATE_TYPES = ("SDD", "DEL")


def map_ups_status(status_type: Optional[str], status_code: Optional[str] = None) -> ShipmentStatus:
    """Map a UPS status type (and optional code) to a ShipmentStatus."""
    t = upper(status_type)
    c = upper(status_code)

    if t == "D" or c.startswith("D"):
        return ShipmentStatus.DELIVERED
    if t in ("X", "RS") or c == "X":
        return ShipmentStatus.EXCEPTION
    if t in ("I", "O") or c in ("I", "O"):
        return ShipmentStatus.TRANSIT
    if t in ("M", "P") or c in ("M", "P"):
        return ShipmentStatus.PENDING
    return ShipmentStatus.UNKNOWN


def parse_ups_datetime(date: Any, time: Any = None) -> datetime:
    """
    Combine UPS ``YYYYMMDD`` and ``HHMMSS``/``HHMM`` strings into a UTC datetime.

    Missing or malformed values fall back to the current time.
    """
    if not date:
        return utc_now()

    date = str(date)
    time = str(time) if time else ""
    hours, minutes, seconds = "00", "00", "00"
    if len(time) >= 4:
        hours, minutes = time[0:2], time[2:4]
        if len(time) >= 6:
            seconds = time[4:6]

    try:
        return datetime(
            int(date[0:4]), int(date[4:6]), int(date[6:8]),
            int(hours), int(minutes), int(seconds),
            tzinfo=timezone.utc,
        )
    except ValueError:
        return utc_now()


def format_ups_location(address: Any) -> str:
    address = as_dict(address)
    country = None
    if is_foreign(address.get("countryCode")):
        country = address.get("countryCode")
    elif is_foreign(address.get("country")):
        country = address.get("country")

    return join_location([
        address.get("city"),
        address.get("stateProvince"),
        country,
        address.get("postalCode"),
    ])


def _activity_to_event(activity: Dict[str, Any]) -> ShipmentEvent:
    status = as_dict(activity.get("status"))
    return ShipmentEvent(
        timestamp=parse_ups_datetime(activity.get("date"), activity.get("time")),
        location=format_ups_location(as_dict(activity.get("location")).get("address")),
        description=text(status.get("description"), "Status update"),
        status=text(status.get("type"), status.get("statusCode"), "UNKNOWN"),
    )


def _estimated_delivery(package: Dict[str, Any]) -> Optional[datetime]:
    for entry in as_list(package.get("deliveryDate")):
        entry = as_dict(entry)
        if entry.get("type") in _DELIVERY_DATE_TYPES or entry.get("date"):
            if entry.get("date"):
                return parse_ups_datetime(entry["date"])
            return None
    return None


def normalize_ups_response(raw: Any, include_raw: bool = False) -> UnifiedShipment:
    """
    Normalize a raw UPS tracking response.

    Args:
        raw: Decoded UPS JSON document (any shape is accepted)
        include_raw: Attach the raw document to the result

    Returns:
        UnifiedShipment with carrier UPS and events newest first
    """
    shipments = as_list(as_dict(as_dict(raw).get("trackResponse")).get("shipment"))
    shipment = as_dict(shipments[0]) if shipments else {}
    packages = as_list(shipment.get("package"))
    package = as_dict(packages[0]) if packages else {}

    if not package:
        return UnifiedShipment(
            tracking_number=text(shipment.get("inquiryNumber"), UNKNOWN_TRACKING_NUMBER),
            carrier=Carrier.UPS,
            status=ShipmentStatus.UNKNOWN,
            raw=raw if include_raw else None,
        )

    activities = [as_dict(a) for a in as_list(package.get("activity"))]
    events = newest_first([_activity_to_event(a) for a in activities])

    current = as_dict(package.get("currentStatus"))
    status_type = current.get("type") or current.get("statusCode")
    if not status_type and activities:
        latest = as_dict(activities[0].get("status"))
        status_type = latest.get("type") or latest.get("statusCode")

    return UnifiedShipment(
        tracking_number=text(
            package.get("trackingNumber"),
            shipment.get("inquiryNumber"),
            UNKNOWN_TRACKING_NUMBER,
        ),
        carrier=Carrier.UPS,
        status=map_ups_status(status_type, current.get("code")),
        estimated_delivery=_estimated_delivery(package),
        current_location=events[0].location if events else None,
        events=events,
        raw=raw if include_raw else None,
    )
