"""
PostgreSQL checkpoint storage backend.

Every version of a thread is its own row in `thread_checkpoints`, so the
latest checkpoint is simply the highest version. Connections come from an
asyncpg pool, either passed in (shared with the application) or created from
a DSN and owned by the store.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from ..errors import StoreError
from .models import Checkpoint, CheckpointMetadata, CheckpointSummary
from .storage import CheckpointStorage

logger = logging.getLogger(__name__)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS thread_checkpoints (
    thread_id TEXT NOT NULL,
    version INTEGER NOT NULL,
    checkpoint_id TEXT NOT NULL,
    data JSONB NOT NULL,
    metadata JSONB NOT NULL,
    version_hint JSONB,
    timestamp TIMESTAMPTZ NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    PRIMARY KEY (thread_id, version)
)
"""

CREATE_INDEX_SQL = (
    "CREATE INDEX IF NOT EXISTS idx_thread_checkpoints_created_at "
    "ON thread_checkpoints(created_at)"
)

# Returns no row when the version is already taken
INSERT_SQL = """
INSERT INTO thread_checkpoints
    (thread_id, version, checkpoint_id, data, metadata, version_hint, timestamp)
VALUES ($1, $2, $3, $4::jsonb, $5::jsonb, $6::jsonb, $7)
ON CONFLICT (thread_id, version) DO NOTHING
RETURNING version
"""


class PostgreSQLStorage(CheckpointStorage):
    """
    PostgreSQL checkpoint storage for production.

    Stores the full checkpoint as JSONB, one row per (thread_id, version).
    A put for a version that already exists is rejected with StoreError, so
    two unserialized turns on the same thread fail loudly instead of one of
    them silently overwriting the other.

    Usage standalone:
        storage = PostgreSQLStorage(dsn="postgresql://...")
        await storage.initialize()

    Usage with an application pool (not closed by the store):
        pool = await asyncpg.create_pool("postgresql://...")
        storage = PostgreSQLStorage(pool=pool)
        await storage.initialize()
    """

    def __init__(
        self,
        dsn: Optional[str] = None,
        pool: Optional[Any] = None,
        min_size: int = 2,
        max_size: int = 10,
    ):
        if pool is None and dsn is None:
            raise ValueError("Either dsn or pool must be provided")
        self._dsn = dsn
        self._pool = pool
        self._owns_pool = pool is None
        self._min_size = min_size
        self._max_size = max_size
        self._initialized = False

    async def initialize(self) -> None:
        """Open the pool if needed, then create table and index."""
        if self._initialized:
            return

        if self._pool is None:
            try:
                import asyncpg
            except ImportError:
                raise ImportError(
                    "asyncpg is required for PostgreSQLStorage. "
                    "Install with: pip install memchain[postgres]"
                )
            self._pool = await asyncpg.create_pool(
                self._dsn, min_size=self._min_size, max_size=self._max_size
            )

        async with self._pool.acquire() as conn:
            await conn.execute(CREATE_TABLE_SQL)
            await conn.execute(CREATE_INDEX_SQL)

        self._initialized = True
        logger.info("PostgreSQL checkpoint storage initialized")

    async def close(self) -> None:
        """Close the pool if this store created it."""
        if self._owns_pool and self._pool is not None:
            await self._pool.close()
            self._pool = None
            self._initialized = False
            logger.info("PostgreSQL checkpoint storage closed")

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(
                "PostgreSQLStorage not initialized. Call await storage.initialize() first."
            )

    async def _fetchrow(self, query: str, *args: Any) -> Optional[Any]:
        self._ensure_initialized()
        async with self._pool.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def _fetch(self, query: str, *args: Any) -> List[Any]:
        self._ensure_initialized()
        async with self._pool.acquire() as conn:
            return await conn.fetch(query, *args)

    # -- CheckpointStorage interface ------------------------------------------

    async def get(self, thread_id: str) -> Optional[Checkpoint]:
        row = await self._fetchrow(
            """
            SELECT data FROM thread_checkpoints
            WHERE thread_id = $1
            ORDER BY version DESC
            LIMIT 1
            """,
            thread_id,
        )
        if row is None:
            return None
        return self._parse_checkpoint(row["data"])

    async def put(
        self,
        thread_id: str,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        version_hint: Optional[Dict[str, Any]] = None,
    ) -> None:
        row = await self._fetchrow(
            INSERT_SQL,
            thread_id,
            checkpoint.version,
            checkpoint.id,
            checkpoint.to_json(),
            json.dumps(metadata.to_dict()),
            json.dumps(version_hint) if version_hint is not None else None,
            checkpoint.timestamp,
        )
        if row is None:
            raise StoreError(
                f"Version {checkpoint.version} of thread {thread_id} already exists "
                "(concurrent turns on the same thread?)",
                thread_id=thread_id,
                operation="put",
            )

    async def get_version(self, thread_id: str, version: int) -> Optional[Checkpoint]:
        row = await self._fetchrow(
            "SELECT data FROM thread_checkpoints WHERE thread_id = $1 AND version = $2",
            thread_id,
            version,
        )
        if row is None:
            return None
        return self._parse_checkpoint(row["data"])

    async def list_versions(
        self,
        thread_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> List[CheckpointSummary]:
        rows = await self._fetch(
            """
            SELECT data FROM thread_checkpoints
            WHERE thread_id = $1
            ORDER BY version DESC
            LIMIT $2 OFFSET $3
            """,
            thread_id,
            limit,
            offset,
        )
        return [
            CheckpointSummary.from_checkpoint(self._parse_checkpoint(r["data"]))
            for r in rows
        ]

    async def list_threads(self) -> List[str]:
        rows = await self._fetch(
            "SELECT DISTINCT thread_id FROM thread_checkpoints ORDER BY thread_id"
        )
        return [r["thread_id"] for r in rows]

    async def delete_thread(self, thread_id: str) -> int:
        rows = await self._fetch(
            "DELETE FROM thread_checkpoints WHERE thread_id = $1 RETURNING version",
            thread_id,
        )
        return len(rows)

    @staticmethod
    def _parse_checkpoint(data) -> Checkpoint:
        """JSONB comes back as str unless a codec is registered on the pool."""
        if isinstance(data, str):
            return Checkpoint.from_json(data)
        return Checkpoint.from_dict(data)
