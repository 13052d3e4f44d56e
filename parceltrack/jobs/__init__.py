"""ParcelTrack jobs - stale cache refresh and its scheduler."""

from .refresh import StaleRefreshJob
from .scheduler import RefreshScheduler

__all__ = ["StaleRefreshJob", "RefreshScheduler"]
