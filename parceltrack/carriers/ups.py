"""UPS Track API v1 adapter."""

import uuid
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

from ..httputil import as_dict_list
from ..models import Carrier, UnifiedShipment
from ..normalizers import normalize_ups_response
from .base import HttpCarrierAdapter


class UpsAdapter(HttpCarrierAdapter):
    """UPS tracking client. Each call carries a fresh ``transId``."""

    carrier = Carrier.UPS
    TRACK_PATH = "/api/track/v1/details/"
    TRANSACTION_SRC = "testing"

    def _build_request(self, tracking_number: str, token: str) -> Tuple[str, Dict[str, str], Dict[str, str]]:
        url = f"{self.base_url}{self.TRACK_PATH}{quote(tracking_number, safe='')}"
        headers = {
            "Authorization": f"Bearer {token}",
            "transId": str(uuid.uuid4()),
            "transactionSrc": self.TRANSACTION_SRC,
            "Accept": "application/json",
        }
        return url, headers, {}

    def _parse_error(self, body: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        errors = as_dict_list((body.get("response") or {}).get("errors"))
        if not errors:
            return None, None
        return errors[0].get("message"), errors[0].get("code")

    def normalize(self, raw: Any, include_raw: bool = False) -> UnifiedShipment:
        return normalize_ups_response(raw, include_raw=include_raw)
