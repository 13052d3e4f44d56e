"""Helpers shared by the carrier normalizers.

Normalizers never raise on odd input: anything unparseable degrades to a
sensible default (now, "Unknown Location", UNKNOWN).
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from dateutil import parser as date_parser

from ..constants import DOMESTIC_COUNTRY_CODES, UNKNOWN_LOCATION
from ..models import ShipmentEvent, utc_now


def as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def upper(value: Any) -> str:
    return str(value).upper() if value else ""


def text(*candidates: Any) -> Optional[str]:
    """First candidate that is a non-empty string or a number, as a string.

    Objects, lists and booleans are skipped so a malformed field falls
    through to the next candidate (usually a literal default).
    """
    for value in candidates:
        if isinstance(value, bool):
            continue
        if isinstance(value, str) and value:
            return value
        if isinstance(value, (int, float)):
            return str(value)
    return None


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string, None when missing or unparseable."""
    if not value or not isinstance(value, str):
        return None
    try:
        return ensure_utc(date_parser.isoparse(value))
    except (ValueError, OverflowError):
        pass
    try:
        return ensure_utc(date_parser.parse(value))
    except (ValueError, OverflowError):
        return None


def parse_iso_or_now(value: Any) -> datetime:
    return parse_iso(value) or utc_now()


def join_location(parts: Iterable[Any]) -> str:
    """Join non-empty parts with ", ", falling back to "Unknown Location"."""
    present = [t for t in (text(p) for p in parts) if t]
    return ", ".join(present) if present else UNKNOWN_LOCATION


def is_foreign(country: Any) -> bool:
    return bool(country) and str(country) not in DOMESTIC_COUNTRY_CODES


def newest_first(events: List[ShipmentEvent]) -> List[ShipmentEvent]:
    return sorted(events, key=lambda e: e.timestamp, reverse=True)
