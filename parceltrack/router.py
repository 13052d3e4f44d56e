"""
Carrier detection based on tracking number format.

Rules are tried in order and the first match wins. Order matters: the
generic numeric rule also matches many USPS numbers, so it must stay last.
"""

import re
from typing import Dict, List, Optional, Pattern, Tuple

from .models import Carrier

_WHITESPACE = re.compile(r"\s+")

CARRIER_RULES: List[Tuple[Carrier, Pattern[str]]] = [
    (Carrier.UPS, re.compile(r"^1Z[A-Z0-9]{16}$")),
    (Carrier.USPS, re.compile(r"^(94|93|92|95)[0-9]{20,22}$")),
    (Carrier.LOCAL, re.compile(r"^LOC.*$")),
    (Carrier.FEDEX, re.compile(r"^[0-9]{12,22}$")),
]

SUPPORTED_FORMATS: Dict[str, str] = {
    Carrier.UPS.value: "1Z + 16 alphanumeric characters",
    Carrier.USPS.value: "94/93/92/95 + 20-22 digits",
    Carrier.LOCAL.value: "LOC + any characters (for testing)",
}


def normalize_tracking_number(tracking_number: str) -> str:
    """
    Normalize tracking number (remove all whitespace, uppercase).

    Args:
        tracking_number: Raw tracking number

    Returns:
        Normalized tracking number
    """
    return _WHITESPACE.sub("", tracking_number or "").upper()


def detect_carrier(tracking_number: str) -> Optional[Carrier]:
    """
    Detect carrier from tracking number format.

    Args:
        tracking_number: The tracking number to analyze

    Returns:
        Carrier or None if no rule matches
    """
    normalized = normalize_tracking_number(tracking_number)
    if not normalized:
        return None

    for carrier, pattern in CARRIER_RULES:
        if pattern.match(normalized):
            return carrier

    return None


def get_tracking_url(carrier: Carrier, tracking_number: str) -> Optional[str]:
    """Public tracking page for a carrier, None for carriers without one."""
    tracking_number = normalize_tracking_number(tracking_number)

    urls = {
        Carrier.UPS: f"https://www.ups.com/track?tracknum={tracking_number}",
        Carrier.USPS: f"https://tools.usps.com/go/TrackConfirmAction?tLabels={tracking_number}",
        Carrier.FEDEX: f"https://www.fedex.com/fedextrack/?trknbr={tracking_number}",
    }

    return urls.get(carrier)
