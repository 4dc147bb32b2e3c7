"""
Database Module
PostgreSQL connection and models with Alembic migrations

Tables:
- users: Accounts with push subscription and notification preferences
- refresh_tokens: Refresh tokens (swept when expired)
- revoked_tokens: Revoked access token ids (swept when expired)
- password_reset_tokens: Password reset tokens (swept when expired)
"""

from .connection import Database
from .models import (
    Base,
    User,
    RefreshToken,
    RevokedToken,
    PasswordResetToken,
)

__all__ = [
    # Connection
    "Database",
    # Models
    "Base",
    "User",
    "RefreshToken",
    "RevokedToken",
    "PasswordResetToken",
]
