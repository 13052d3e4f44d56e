"""
Per-provider OAuth token cache.

A TokenCache reuses the persisted bearer token while it is comfortably
valid and performs the provider's client-credentials exchange otherwise.
Subclasses only implement ``_exchange``; retry policy belongs to callers.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple

import httpx

from ..constants import DEFAULT_HTTP_TIMEOUT, TOKEN_EXPIRY_BUFFER
from ..errors import AuthError
from ..models import SystemToken, utc_now
from .store import TokenStore

logger = logging.getLogger(__name__)


class TokenCache(ABC):
    """
    Bearer-token cache for one provider.

    Args:
        store: Where the provider's token row lives.
        client_id / client_secret: OAuth client credentials.
        base_url: Provider API root; the token path is appended by subclasses.
        buffer: Safety margin subtracted from the real expiry.
        clock: Returns the current aware UTC datetime.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    PROVIDER: str = ""

    def __init__(
        self,
        store: TokenStore,
        client_id: str = "",
        client_secret: str = "",
        base_url: str = "",
        buffer: timedelta = TOKEN_EXPIRY_BUFFER,
        clock: Callable[[], datetime] = utc_now,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        self._store = store
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")
        self._buffer = buffer
        self._clock = clock
        self._transport = transport
        self._timeout = timeout

        if not self.has_credentials:
            logger.warning(
                f"{self.PROVIDER} credentials not configured. "
                f"Set {self.PROVIDER}_CLIENT_ID and {self.PROVIDER}_CLIENT_SECRET"
            )

    @property
    def provider(self) -> str:
        return self.PROVIDER

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def is_usable(self, record: SystemToken) -> bool:
        """True while now is earlier than expiry minus the buffer."""
        return self._clock() < record.expires_at - self._buffer

    async def get_token(self) -> str:
        """Return the cached token if still usable, otherwise fetch a new one."""
        record = await self._store.get(self.PROVIDER)
        if record and self.is_usable(record):
            return record.token
        return await self._fetch_new_token()

    async def refresh_token(self) -> str:
        """Force a new exchange, bypassing the cached row."""
        return await self._fetch_new_token()

    async def invalidate_token(self) -> None:
        """Remove the cached token for this provider."""
        await self._store.delete(self.PROVIDER)
        logger.info(f"Invalidated {self.PROVIDER} token")

    async def _fetch_new_token(self) -> str:
        if not self.has_credentials:
            raise AuthError(
                self.PROVIDER,
                f"{self.PROVIDER} credentials not configured",
                "MISSING_CREDENTIALS",
                500,
            )

        try:
            async with self._client() as client:
                token, expires_in = await self._exchange(client)
        except AuthError:
            raise
        except httpx.TimeoutException as e:
            raise AuthError(
                self.PROVIDER,
                f"{self.PROVIDER} token request timed out: {e}",
                "TIMEOUT",
                504,
            ) from e
        except (httpx.HTTPError, ValueError, KeyError) as e:
            raise AuthError(
                self.PROVIDER,
                f"Failed to fetch {self.PROVIDER} token: {e}",
                "FETCH_ERROR",
                500,
            ) from e

        expires_at = self._clock() + timedelta(seconds=expires_in)
        await self._store.upsert(self.PROVIDER, token, expires_at)
        logger.info(f"Fetched new {self.PROVIDER} token (expires {expires_at.isoformat()})")
        return token

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    @abstractmethod
    async def _exchange(self, client: httpx.AsyncClient) -> Tuple[str, int]:
        """Run the client-credentials exchange.

        Returns (access_token, expires_in_seconds). Raises AuthError for
        non-2xx responses.
        """
        pass
