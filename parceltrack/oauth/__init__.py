"""ParcelTrack OAuth - client-credentials token exchange for UPS and USPS."""

from .ups_oauth import UpsTokenCache
from .usps_oauth import UspsTokenCache

__all__ = ["UpsTokenCache", "UspsTokenCache"]
