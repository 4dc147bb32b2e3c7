"""
Token Service
Delete expired authentication tokens
"""

import logging
from typing import Dict

import asyncpg

from database.connection import Database
from scheduler.errors import CleanupFailure

logger = logging.getLogger(__name__)

# Tables swept by cleanup; each has an expires_at column
EXPIRING_TOKEN_TABLES = (
    "refresh_tokens",
    "revoked_tokens",
    "password_reset_tokens",
)


def _deleted_count(status: str) -> int:
    """Parse an asyncpg status string such as 'DELETE 3'."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


async def cleanup_expired_tokens(db: Database) -> Dict[str, int]:
    """
    Delete every token whose expiry has passed.

    Args:
        db: Database connection

    Returns:
        Deleted row count per table

    Raises:
        CleanupFailure: If the database rejects the cleanup
    """
    deleted = {}
    try:
        async with db.transaction() as conn:
            for table in EXPIRING_TOKEN_TABLES:
                status = await conn.execute(
                    f"DELETE FROM {table} WHERE expires_at < NOW()"
                )
                deleted[table] = _deleted_count(status)
    except (asyncpg.PostgresError, OSError, RuntimeError) as e:
        raise CleanupFailure(f"Token cleanup failed: {e}") from e

    total = sum(deleted.values())
    if total:
        logger.info(f"Deleted {total} expired token(s): {deleted}")
    return deleted
