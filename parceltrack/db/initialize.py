"""
ParcelTrack Database Schema Management.

Lightweight migration system:
- Tracks current schema version in a `schema_version` table
- Only runs migrations that haven't been applied yet
- Each migration is a (version, description, SQL) tuple
- Safe for concurrent startup (uses advisory lock)

Usage:
    db = Database(dsn="postgresql://...")
    await db.initialize()
    await ensure_schema(db)
"""

import logging
from typing import List, Tuple

from .database import Database

logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────
# Migration registry
#
# Append-only. Never modify or delete existing entries.
# Each entry: (version, description, sql)
# ──────────────────────────────────────────────────────────────
MIGRATIONS: List[Tuple[int, str, str]] = [
    (
        1,
        "Create cached_shipments table",
        """
        CREATE TABLE IF NOT EXISTS cached_shipments (
            id                 UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            tracking_number    TEXT NOT NULL UNIQUE,
            carrier            TEXT NOT NULL,
            status             TEXT NOT NULL DEFAULT 'UNKNOWN',
            estimated_delivery TIMESTAMPTZ,
            current_location   TEXT,
            created_at         TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at         TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
        """,
    ),
    (
        2,
        "Create cached_shipment_events table",
        """
        CREATE TABLE IF NOT EXISTS cached_shipment_events (
            id          UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            shipment_id UUID NOT NULL REFERENCES cached_shipments (id) ON DELETE CASCADE,
            timestamp   TIMESTAMPTZ NOT NULL,
            location    TEXT,
            description TEXT NOT NULL,
            status      TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_cached_shipment_events_shipment
            ON cached_shipment_events (shipment_id);
        """,
    ),
    (
        3,
        "Create system_tokens table",
        """
        CREATE TABLE IF NOT EXISTS system_tokens (
            provider   TEXT PRIMARY KEY,
            token      TEXT NOT NULL,
            expires_at TIMESTAMPTZ NOT NULL,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
        """,
    ),
    (
        4,
        "Index cached_shipments for the stale refresh query",
        """
        CREATE INDEX IF NOT EXISTS idx_cached_shipments_status_updated
            ON cached_shipments (status, updated_at);
        """,
    ),
    # ── Future migrations go here ──
]


# ──────────────────────────────────────────────────────────────
# Schema management
# ──────────────────────────────────────────────────────────────

_BOOTSTRAP_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    description TEXT NOT NULL,
    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

# PostgreSQL advisory lock ID (arbitrary constant, unique to this app)
_LOCK_ID = 7_2658_2024


async def ensure_schema(db: Database) -> None:
    """Apply any pending migrations.

    - Creates the ``schema_version`` tracking table if needed
    - Uses a PostgreSQL advisory lock to prevent concurrent migration runs
    - Skips migrations that have already been applied
    - Each migration runs in its own transaction

    Args:
        db: Initialized Database instance.
    """
    async with db.connection() as conn:
        await conn.execute("SELECT pg_advisory_lock($1)", _LOCK_ID)
        try:
            await conn.execute(_BOOTSTRAP_SQL)

            row = await conn.fetchrow(
                "SELECT COALESCE(MAX(version), 0) AS v FROM schema_version"
            )
            current = row["v"]

            pending = [(v, d, s) for v, d, s in MIGRATIONS if v > current]
            if not pending:
                logger.debug(f"Schema up to date (version {current})")
                return

            for version, description, sql in pending:
                async with conn.transaction():
                    await conn.execute(sql)
                    await conn.execute(
                        "INSERT INTO schema_version (version, description) VALUES ($1, $2)",
                        version,
                        description,
                    )
                logger.info(f"Migration {version}: {description}")

            logger.info(
                f"Schema migrated {current} -> {pending[-1][0]} "
                f"({len(pending)} migration(s))"
            )
        finally:
            await conn.execute("SELECT pg_advisory_unlock($1)", _LOCK_ID)
