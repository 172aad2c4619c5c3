"""PostgreSQL-backed image cache with connection pooling."""

import asyncio
from types import TracebackType
from typing import ClassVar

import asyncpg

from plane2discord.core.config import get_settings
from plane2discord.core.logging import get_logger
from plane2discord.shared.exceptions import DatabaseError

logger = get_logger(__name__)

# Server errors, dropped or refused connections, and command_timeout expiry
QUERY_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)

IMAGE_CACHE_SCHEMA = """
    CREATE TABLE IF NOT EXISTS image_cache (
        image_hash TEXT PRIMARY KEY,
        hosted_url TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        refreshed_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""


class DatabaseClient:
    """Async PostgreSQL client holding the content hash -> hosted URL mapping.

    Opened once at startup (``async with``) and shared by every request.
    """

    MAX_RETRIES: ClassVar[int] = 3
    RETRY_DELAYS: ClassVar[list[int]] = [2, 4, 8]
    COMMAND_TIMEOUT: ClassVar[float] = 10.0

    def __init__(self) -> None:
        self.pool: asyncpg.Pool | None = None

    async def __aenter__(self) -> "DatabaseClient":
        """Create connection pool with retry logic."""
        settings = get_settings()

        for attempt in range(self.MAX_RETRIES):
            try:
                self.pool = await asyncpg.create_pool(
                    host=settings.db_host,
                    port=settings.db_port,
                    database=settings.db_name,
                    user=settings.db_user,
                    password=settings.db_password,
                    min_size=1,
                    max_size=5,
                    timeout=60.0,
                    command_timeout=self.COMMAND_TIMEOUT,
                )
                logger.info("database.pool.created", min_size=1, max_size=5)
                return self
            except QUERY_ERRORS as e:
                if attempt < self.MAX_RETRIES - 1:
                    logger.warning("database.pool.retry", attempt=attempt + 1, error=str(e))
                    await asyncio.sleep(self.RETRY_DELAYS[attempt])
                else:
                    logger.error("database.pool.failed", error=str(e), exc_info=True)
                    raise DatabaseError(f"Failed to create pool: {e}") from e
        raise DatabaseError("Unreachable")

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close connection pool."""
        if self.pool:
            await self.pool.close()
            logger.info("database.pool.closed")

    async def ensure_schema(self) -> None:
        """Create the image cache table if it does not exist.

        Raises:
            DatabaseError: If connection pool is not initialized or DDL fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        try:
            async with self.pool.acquire() as conn:
                await conn.execute(IMAGE_CACHE_SCHEMA)
                logger.info("database.schema.ready", table="image_cache")
        except QUERY_ERRORS as e:
            logger.error("database.ensure_schema.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to create image_cache table: {e}") from e

    async def get_image_url(self, image_hash: str) -> str | None:
        """Look up the hosted URL recorded for an image digest.

        Args:
            image_hash: Hex-encoded SHA-256 of the image bytes

        Returns:
            Hosted URL, or None if the image has not been uploaded yet

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            SELECT hosted_url FROM image_cache
            WHERE image_hash = $1
        """

        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(query, image_hash)
                return row["hosted_url"] if row else None
        except QUERY_ERRORS as e:
            logger.error("database.get_image_url.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to look up image hash: {e}") from e

    async def save_image_url(self, image_hash: str, hosted_url: str) -> str:
        """Record the hosted URL for an image digest.

        The first URL written for a digest wins. A later insert for the same
        digest only refreshes ``refreshed_at`` and gets the stored URL back,
        so a digest never points at two different objects.

        Args:
            image_hash: Hex-encoded SHA-256 of the image bytes
            hosted_url: Public URL of the uploaded object

        Returns:
            The URL now associated with the digest

        Raises:
            DatabaseError: If connection pool is not initialized or query fails
        """
        if not self.pool:
            raise DatabaseError("Connection pool not initialized")

        query = """
            INSERT INTO image_cache (image_hash, hosted_url)
            VALUES ($1, $2)
            ON CONFLICT (image_hash)
            DO UPDATE SET refreshed_at = NOW()
            RETURNING hosted_url
        """

        try:
            async with self.pool.acquire() as conn:
                stored: str = await conn.fetchval(query, image_hash, hosted_url)
                logger.info(
                    "database.save_image_url.success",
                    image_hash=image_hash[:12],
                    reused=stored != hosted_url,
                )
                return stored
        except QUERY_ERRORS as e:
            logger.error("database.save_image_url.failed", error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to record image hash: {e}") from e
