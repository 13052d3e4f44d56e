"""
ParcelTrack error types.

Every failure that can leave the core is a ParcelTrackError carrying an
HTTP-like status and a machine-readable code, so the HTTP layer can map it
to a response without inspecting provider details.
"""

from typing import Any, Dict, Optional


class ParcelTrackError(Exception):
    """Base class for all ParcelTrack errors."""

    def __init__(
        self,
        message: str,
        http_status: int = 500,
        error_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.http_status = http_status
        self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "ERROR",
            "message": self.message,
            "error_code": self.error_code,
        }


class AuthError(ParcelTrackError):
    """OAuth credential or token-exchange failure for a provider."""

    def __init__(self, provider: str, message: str, code: str, http_status: int):
        super().__init__(message, http_status=http_status, error_code=code)
        self.provider = provider
        self.code = code


class TrackingError(ParcelTrackError):
    """Carrier tracking call failure."""

    def __init__(
        self,
        provider: str,
        message: str,
        http_status: int,
        provider_error_code: Optional[str] = None,
    ):
        super().__init__(message, http_status=http_status, error_code=provider_error_code)
        self.provider = provider
        self.provider_error_code = provider_error_code

    @property
    def is_timeout(self) -> bool:
        return self.http_status == 504 or self.provider_error_code == "TIMEOUT"


class CarrierUndetermined(ParcelTrackError):
    """No router rule matched the tracking number."""

    def __init__(self, tracking_number: str):
        super().__init__(
            f"Unable to determine carrier for tracking number: {tracking_number}",
            http_status=400,
            error_code="CARRIER_UNDETERMINED",
        )
        self.tracking_number = tracking_number


class UnsupportedCarrier(ParcelTrackError):
    """The router matched a carrier that has no adapter wired."""

    def __init__(self, carrier: str):
        super().__init__(
            f"Carrier {carrier} is not yet supported",
            http_status=400,
            error_code="UNSUPPORTED_CARRIER",
        )
        self.carrier = carrier
