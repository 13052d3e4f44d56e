"""
Carrier adapter interface and registry.

- CarrierAdapter: abstract per-carrier tracking client
- HttpCarrierAdapter: bearer-token HTTP flow shared by real carrier APIs
- AdapterRegistry: Carrier -> adapter lookup used by the cache service
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..constants import DEFAULT_HTTP_TIMEOUT
from ..errors import TrackingError, UnsupportedCarrier
from ..httputil import json_or_empty
from ..models import Carrier, UnifiedShipment
from ..router import normalize_tracking_number
from ..tokens.cache import TokenCache

logger = logging.getLogger(__name__)


class CarrierAdapter(ABC):
    """Tracking client for one carrier."""

    carrier: Carrier

    @property
    def provider(self) -> str:
        return self.carrier.value

    @abstractmethod
    async def track(self, tracking_number: str) -> Dict[str, Any]:
        """Fetch the carrier's raw tracking document."""
        pass

    async def track_raw(self, tracking_number: str) -> bytes:
        """Raw tracking payload as bytes, for debugging."""
        return json.dumps(await self.track(tracking_number)).encode("utf-8")

    @abstractmethod
    def normalize(self, raw: Any, include_raw: bool = False) -> UnifiedShipment:
        """Map a raw tracking document to a UnifiedShipment."""
        pass

    async def fetch_shipment(self, tracking_number: str, include_raw: bool = False) -> UnifiedShipment:
        raw = await self.track(tracking_number)
        return self.normalize(raw, include_raw=include_raw)

    def _require_tracking_number(self, tracking_number: str) -> str:
        cleaned = normalize_tracking_number(tracking_number)
        if not cleaned:
            raise TrackingError(self.provider, "Tracking number is required", 400)
        return cleaned


class HttpCarrierAdapter(CarrierAdapter):
    """
    Carrier adapter backed by an HTTP tracking API.

    Subclasses describe the request (``_build_request``) and how to read the
    provider's error envelope (``_parse_error``). Token handling, timeouts
    and transport failures are handled here.
    """

    def __init__(
        self,
        token_cache: TokenCache,
        base_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        self._tokens = token_cache
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        self._timeout = timeout

    @abstractmethod
    def _build_request(self, tracking_number: str, token: str) -> Tuple[str, Dict[str, str], Dict[str, str]]:
        """Return (url, headers, query params) for a tracking call."""
        pass

    @abstractmethod
    def _parse_error(self, body: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        """Extract (message, code) from a provider error body."""
        pass

    def _check_body(self, data: Dict[str, Any]) -> None:
        """Hook for providers that report errors inside a 2xx body."""
        return None

    async def track(self, tracking_number: str) -> Dict[str, Any]:
        response = await self._get(tracking_number)
        try:
            data = response.json()
        except ValueError as e:
            raise TrackingError(
                self.provider, f"Failed to track shipment: invalid JSON ({e})", 500
            ) from e
        if not isinstance(data, dict):
            raise TrackingError(self.provider, "Failed to track shipment: unexpected payload", 500)
        self._check_body(data)
        return data

    async def track_raw(self, tracking_number: str) -> bytes:
        response = await self._get(tracking_number)
        return response.content

    async def _get(self, tracking_number: str) -> httpx.Response:
        cleaned = self._require_tracking_number(tracking_number)
        token = await self._tokens.get_token()
        url, headers, params = self._build_request(cleaned, token)

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                response = await client.get(url, headers=headers, params=params)
        except httpx.TimeoutException as e:
            raise TrackingError(
                self.provider, f"{self.provider} tracking request timed out", 504, "TIMEOUT"
            ) from e
        except httpx.HTTPError as e:
            raise TrackingError(self.provider, f"Failed to track shipment: {e}", 500) from e

        if not response.is_success:
            logger.error(f"{self.provider} Tracking API Error [{response.status_code}]: {response.text}")
            message, code = self._parse_error(json_or_empty(response))
            raise TrackingError(
                self.provider,
                message or f"{self.provider} API Error: {response.reason_phrase}",
                response.status_code,
                code,
            )

        return response


class AdapterRegistry:
    """Maps each supported Carrier to its adapter."""

    def __init__(self, adapters: Optional[List[CarrierAdapter]] = None):
        self._adapters: Dict[Carrier, CarrierAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: CarrierAdapter) -> None:
        self._adapters[adapter.carrier] = adapter
        logger.debug(f"Registered adapter for {adapter.carrier.value}")

    def get(self, carrier: Carrier) -> CarrierAdapter:
        adapter = self._adapters.get(carrier)
        if adapter is None:
            raise UnsupportedCarrier(carrier.value)
        return adapter

    def carriers(self) -> List[Carrier]:
        return list(self._adapters)

    def __contains__(self, carrier: Carrier) -> bool:
        return carrier in self._adapters
