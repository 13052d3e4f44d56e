"""
Shared constants for ParcelTrack.

Cache and scheduler limits live here so that the service, the refresh job
and the token caches agree on them. They are read when services are
constructed and never changed while the process runs.
"""

from datetime import timedelta
from typing import Tuple

# ── Shipment cache ──

# Non-terminal cache rows older than this are refetched on read.
CACHE_TTL = timedelta(minutes=15)

# ── Stale refresh job ──

# Rows not refreshed for this long are picked up by the background job.
STALE_THRESHOLD = timedelta(minutes=30)

# Upper bound on carrier calls per job run (carrier rate limits).
REFRESH_BATCH_SIZE = 5

# Seconds between scheduled job runs.
REFRESH_INTERVAL_SECONDS = 600.0

# ── OAuth tokens ──

# A cached token is treated as expired this long before its real expiry.
TOKEN_EXPIRY_BUFFER = timedelta(minutes=5)

# ── Normalization ──

UNKNOWN_LOCATION = "Unknown Location"
UNKNOWN_TRACKING_NUMBER = "UNKNOWN"

# ── Provider names (``provider`` column in ``system_tokens``) ──

PROVIDER_UPS = "UPS"
PROVIDER_USPS = "USPS"
PROVIDER_LOCAL = "LOCAL"

# ── HTTP ──

DEFAULT_HTTP_TIMEOUT = 30.0

DEFAULT_UPS_BASE_URL = "https://onlinetools.ups.com"
DEFAULT_USPS_BASE_URL = "https://apis.usps.com"

# Countries omitted from formatted locations.
DOMESTIC_COUNTRY_CODES: Tuple[str, ...] = ("US", "USA")
