"""ParcelTrack tokens - persisted OAuth bearer tokens and the per-provider cache."""

from .cache import TokenCache
from .store import MemoryTokenStore, PostgresTokenStore, TokenStore

__all__ = ["TokenCache", "TokenStore", "MemoryTokenStore", "PostgresTokenStore"]
