"""
SystemToken persistence - one bearer token row per provider.

- TokenStore: abstract interface used by token caches
- MemoryTokenStore: in-process backend for development/testing
- PostgresTokenStore: ``system_tokens`` table on the shared Database

Upsert-only: saving a token for a provider replaces the previous one, no
history is kept.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Optional

from ..db import Database, Repository
from ..models import SystemToken

logger = logging.getLogger(__name__)


class TokenStore(ABC):
    """Abstract base class for token storage backends"""

    @abstractmethod
    async def get(self, provider: str) -> Optional[SystemToken]:
        """Get the stored token for a provider"""
        pass

    @abstractmethod
    async def upsert(self, provider: str, token: str, expires_at: datetime) -> SystemToken:
        """Insert or replace the token for a provider"""
        pass

    @abstractmethod
    async def delete(self, provider: str) -> bool:
        """Delete the token for a provider. Returns True if a row was removed"""
        pass


class MemoryTokenStore(TokenStore):
    """In-memory token store for development/testing"""

    def __init__(self):
        self._tokens: Dict[str, SystemToken] = {}

    async def get(self, provider: str) -> Optional[SystemToken]:
        return self._tokens.get(provider)

    async def upsert(self, provider: str, token: str, expires_at: datetime) -> SystemToken:
        record = SystemToken(provider=provider, token=token, expires_at=expires_at)
        self._tokens[provider] = record
        return record

    async def delete(self, provider: str) -> bool:
        return self._tokens.pop(provider, None) is not None


class PostgresTokenStore(Repository, TokenStore):
    """
    Token storage on PostgreSQL.

    Table: system_tokens
    Primary key: provider
    """

    TABLE_NAME = "system_tokens"

    def __init__(self, db: Database):
        super().__init__(db)

    async def get(self, provider: str) -> Optional[SystemToken]:
        row = await self.db.fetchrow(
            "SELECT provider, token, expires_at FROM system_tokens WHERE provider = $1",
            provider,
        )
        if not row:
            return None
        return SystemToken(
            provider=row["provider"],
            token=row["token"],
            expires_at=row["expires_at"],
        )

    async def upsert(self, provider: str, token: str, expires_at: datetime) -> SystemToken:
        await self.db.execute(
            """
            INSERT INTO system_tokens (provider, token, expires_at, updated_at)
            VALUES ($1, $2, $3, NOW())
            ON CONFLICT (provider)
            DO UPDATE SET token = EXCLUDED.token, expires_at = EXCLUDED.expires_at, updated_at = NOW()
            """,
            provider, token, expires_at,
        )
        return SystemToken(provider=provider, token=token, expires_at=expires_at)

    async def delete(self, provider: str) -> bool:
        result = await self.db.execute(
            "DELETE FROM system_tokens WHERE provider = $1",
            provider,
        )
        return self._affected(result) > 0
