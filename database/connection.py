"""
Database Connection Module
Async PostgreSQL pool shared by recipient lookup and token cleanup
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import asyncpg
from asyncpg import Pool, Connection, Record

logger = logging.getLogger(__name__)


class Database:
    """
    Async PostgreSQL connection manager.

    Only the query shapes the scheduling subsystem needs are exposed:
    row fetches for cohort lookup, a scalar fetch for health checks and a
    transaction for token cleanup.
    """

    def __init__(self):
        self.pool: Optional[Pool] = None

    async def connect(
        self,
        dsn: str,
        min_size: int = 2,
        max_size: int = 10,
        timeout: float = 60.0,
        timezone: str = "UTC",
        retries: int = 5,
        retry_delay: float = 2.0,
    ) -> None:
        """
        Initialize connection pool, retrying while the server comes up.

        Args:
            dsn: PostgreSQL connection string
            min_size: Minimum pool connections
            max_size: Maximum pool connections
            timeout: Command timeout in seconds
            timezone: Session timezone
            retries: Connection attempts before giving up
            retry_delay: Seconds between attempts (doubles each time)
        """
        if self.pool is not None:
            logger.warning("Pool already exists, closing existing pool")
            await self.close()

        delay = retry_delay
        for attempt in range(1, retries + 1):
            try:
                self.pool = await asyncpg.create_pool(
                    dsn=dsn,
                    min_size=min_size,
                    max_size=max_size,
                    command_timeout=timeout,
                    server_settings={"timezone": timezone},
                )
                logger.info(f"Database pool created (min={min_size}, max={max_size})")
                return
            except (OSError, asyncpg.PostgresError) as e:
                if attempt == retries:
                    logger.error(f"Failed to create database pool: {e}")
                    raise
                logger.warning(f"Database not ready (attempt {attempt}/{retries}): {e}")
                await asyncio.sleep(delay)
                delay *= 2

    async def close(self) -> None:
        """Close connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Database pool closed")

    def _ensure_pool(self) -> Pool:
        if self.pool is None:
            raise RuntimeError("Database pool not initialized. Call connect() first.")
        return self.pool

    async def fetch_all(self, query: str, *args: Any) -> list[Record]:
        """Fetch all rows for query."""
        async with self._ensure_pool().acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetch_val(self, query: str, *args: Any) -> Any:
        """Fetch a single value (or None)."""
        async with self._ensure_pool().acquire() as conn:
            return await conn.fetchval(query, *args)

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Connection, None]:
        """
        Connection inside a transaction; commits on success, rolls back on error.

        Usage:
            async with db.transaction() as conn:
                await conn.execute(...)
        """
        async with self._ensure_pool().acquire() as conn:
            async with conn.transaction():
                yield conn

    async def health_check(self) -> bool:
        """
        Check if database is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return await self.fetch_val("SELECT 1") == 1
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return False
