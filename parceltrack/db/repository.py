"""
ParcelTrack Repository - Base class for table-owning data access.

Each Postgres-backed store subclasses Repository, names the table it owns
and implements its queries on the shared Database. Tables themselves are
created by ``ensure_schema`` migrations.

Usage:
    class PostgresTokenStore(Repository, TokenStore):
        TABLE_NAME = "system_tokens"

        async def get(self, provider: str):
            row = await self.db.fetchrow(
                "SELECT * FROM system_tokens WHERE provider = $1", provider
            )
            ...
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .database import Database


class Repository:
    """
    Base class for domain data access.

    Subclasses define TABLE_NAME and domain methods.
    """

    TABLE_NAME: str = ""

    def __init__(self, db: "Database"):
        self._db = db

    @property
    def db(self) -> "Database":
        return self._db

    @staticmethod
    def _affected(status: str) -> int:
        """Row count from an asyncpg status string such as 'DELETE 3'."""
        try:
            return int(status.split()[-1])
        except (AttributeError, ValueError, IndexError):
            return 0
