#!/usr/bin/env python3
"""
Database Setup Script
Apply the CRAPP schema and inspect or sweep expired tokens

Usage:
    python scripts/db_setup.py              # Check connection, apply migrations
    python scripts/db_setup.py --check      # Check database connection only
    python scripts/db_setup.py --tokens     # Report expired tokens per table
    python scripts/db_setup.py --cleanup    # Run one token cleanup pass now
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from alembic import command
from alembic.config import Config
from dotenv import load_dotenv

load_dotenv()

MIGRATIONS_DIR = ROOT / "database" / "migrations"


async def _connect():
    from database import Database

    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        print("ERROR: DATABASE_URL not set in environment")
        return None

    db = Database()
    await db.connect(db_url, retries=1)
    return db


async def check_connection() -> bool:
    """Test database connection."""
    try:
        db = await _connect()
        if db is None:
            return False
        ok = await db.health_check()
        await db.close()
    except Exception as e:
        print(f"ERROR: Failed to connect to database: {e}")
        return False

    print("SUCCESS: Database connection OK" if ok else "ERROR: Unexpected result from database")
    return ok


def apply_migrations() -> bool:
    """Upgrade the schema to the latest Alembic revision."""
    config = Config(str(MIGRATIONS_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(MIGRATIONS_DIR))

    print("Applying database migrations...")
    try:
        command.upgrade(config, "head")
    except Exception as e:
        print(f"ERROR: Migration failed: {e}")
        return False

    print("SUCCESS: Schema is at head")
    return True


async def report_expired_tokens() -> bool:
    """Print how many expired rows each token table holds."""
    from services import EXPIRING_TOKEN_TABLES

    db = await _connect()
    if db is None:
        return False
    try:
        for table in EXPIRING_TOKEN_TABLES:
            expired = await db.fetch_val(f"SELECT COUNT(*) FROM {table} WHERE expires_at < NOW()")
            total = await db.fetch_val(f"SELECT COUNT(*) FROM {table}")
            print(f"  {table:<24} {expired:>8} expired / {total} total")
    finally:
        await db.close()
    return True


async def run_cleanup() -> bool:
    """Delete expired tokens once, outside the scheduler."""
    from scheduler import CleanupFailure
    from services import cleanup_expired_tokens

    db = await _connect()
    if db is None:
        return False
    try:
        deleted = await cleanup_expired_tokens(db)
    except CleanupFailure as e:
        print(f"ERROR: {e}")
        return False
    finally:
        await db.close()

    for table, count in deleted.items():
        print(f"  {table:<24} {count:>8} deleted")
    return True


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="CRAPP Database Setup")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--check", action="store_true", help="Check database connection only")
    group.add_argument("--tokens", action="store_true", help="Report expired tokens per table")
    group.add_argument("--cleanup", action="store_true", help="Delete expired tokens now")
    args = parser.parse_args()

    print("=" * 60)
    print("CRAPP Database Setup")
    print("=" * 60)

    if args.check:
        success = asyncio.run(check_connection())
    elif args.tokens:
        success = asyncio.run(report_expired_tokens())
    elif args.cleanup:
        success = asyncio.run(run_cleanup())
    else:
        success = asyncio.run(check_connection()) and apply_migrations()

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
