"""
SQLAlchemy Models for CRAPP
Tables read by recipient selection and swept by token cleanup
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class User(Base):
    """
    Application user.
    notification_preferences holds the JSON document with push_enabled,
    email_enabled, reminder_times and cutoff_time.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(255))
    last_name = Column(String(255))
    is_admin = Column(Boolean, default=False)

    push_subscription = Column(Text)
    notification_preferences = Column(Text)
    last_assessment_date = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_users_email", "email"),
    )

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class RefreshToken(Base):
    """Long-lived refresh token tied to an access token id."""
    __tablename__ = "refresh_tokens"

    token = Column(String(255), primary_key=True)
    token_id = Column(String(255), nullable=False)
    user_email = Column(String(255), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_refresh_tokens_token_id", "token_id"),
        Index("idx_refresh_tokens_user_email", "user_email"),
        Index("idx_refresh_tokens_expires", "expires_at"),
    )


class RevokedToken(Base):
    """Denylist entry for a revoked access token."""
    __tablename__ = "revoked_tokens"

    token_id = Column(String(255), primary_key=True)
    user_email = Column(String(255), nullable=False)
    revoked_at = Column(DateTime(timezone=True), server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_revoked_tokens_expires", "expires_at"),
    )


class PasswordResetToken(Base):
    """Single-use password reset token."""
    __tablename__ = "password_reset_tokens"

    token = Column(String(255), primary_key=True)
    user_email = Column(String(255), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_password_reset_tokens_user_email", "user_email"),
        Index("idx_password_reset_tokens_expires", "expires_at"),
    )
