"""USPS Tracking v3 adapter."""

from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

from ..errors import TrackingError
from ..models import Carrier, UnifiedShipment
from ..normalizers import normalize_usps_response
from .base import HttpCarrierAdapter


class UspsAdapter(HttpCarrierAdapter):
    """USPS tracking client, always requesting the DETAIL expansion."""

    carrier = Carrier.USPS
    TRACK_PATH = "/tracking/v3/tracking/"

    def _build_request(self, tracking_number: str, token: str) -> Tuple[str, Dict[str, str], Dict[str, str]]:
        url = f"{self.base_url}{self.TRACK_PATH}{quote(tracking_number, safe='')}"
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        return url, headers, {"expand": "DETAIL"}

    def _parse_error(self, body: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        error = body.get("error") if isinstance(body.get("error"), dict) else {}
        api_error = (body.get("apiError") or {}).get("error") or {}
        return (
            error.get("message") or api_error.get("message"),
            error.get("code") or api_error.get("code"),
        )

    def _check_body(self, data: Dict[str, Any]) -> None:
        error = data.get("error")
        if error:
            error = error if isinstance(error, dict) else {"message": str(error)}
            raise TrackingError(
                self.provider,
                error.get("message") or "USPS tracking error",
                400,
                error.get("code"),
            )

    def normalize(self, raw: Any, include_raw: bool = False) -> UnifiedShipment:
        return normalize_usps_response(raw, include_raw=include_raw)
