"""Tests for expired token cleanup."""

import pytest

from scheduler import CleanupFailure
from services import EXPIRING_TOKEN_TABLES, cleanup_expired_tokens

from tests.fakes import FakeDatabase


@pytest.mark.asyncio
async def test_deletes_from_every_token_table():
    db = FakeDatabase(statuses=["DELETE 3", "DELETE 0", "DELETE 1"])

    deleted = await cleanup_expired_tokens(db)

    assert deleted == {"refresh_tokens": 3, "revoked_tokens": 0, "password_reset_tokens": 1}
    assert db.committed
    assert len(db.executed) == len(EXPIRING_TOKEN_TABLES)
    for table, query in zip(EXPIRING_TOKEN_TABLES, db.executed):
        assert query == f"DELETE FROM {table} WHERE expires_at < NOW()"


@pytest.mark.asyncio
async def test_unparseable_status_counts_as_zero():
    db = FakeDatabase(statuses=["DELETE", None, "DELETE 2"])

    deleted = await cleanup_expired_tokens(db)

    assert deleted["refresh_tokens"] == 0
    assert deleted["revoked_tokens"] == 0
    assert deleted["password_reset_tokens"] == 2


@pytest.mark.asyncio
async def test_connection_error_becomes_cleanup_failure():
    db = FakeDatabase(error=OSError("connection refused"))

    with pytest.raises(CleanupFailure, match="connection refused"):
        await cleanup_expired_tokens(db)


@pytest.mark.asyncio
async def test_pool_not_initialized_becomes_cleanup_failure():
    db = FakeDatabase(error=RuntimeError("Database pool not initialized"))

    with pytest.raises(CleanupFailure):
        await cleanup_expired_tokens(db)
