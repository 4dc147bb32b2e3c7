"""Initial schema - users and auth token tables

Revision ID: 0001
Revises:
Create Date: 2025-03-01

Creates:
- users: Accounts with notification preferences
- refresh_tokens: Refresh tokens
- revoked_tokens: Revoked access token ids
- password_reset_tokens: Password reset tokens
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1. Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(255), nullable=True),
        sa.Column("last_name", sa.String(255), nullable=True),
        sa.Column("is_admin", sa.Boolean(), server_default="false"),
        sa.Column("push_subscription", sa.Text(), nullable=True),
        sa.Column("notification_preferences", sa.Text(), nullable=True),
        sa.Column("last_assessment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("idx_users_email", "users", ["email"])

    # 2. Refresh tokens
    op.create_table(
        "refresh_tokens",
        sa.Column("token", sa.String(255), nullable=False),
        sa.Column("token_id", sa.String(255), nullable=False),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("token"),
    )
    op.create_index("idx_refresh_tokens_token_id", "refresh_tokens", ["token_id"])
    op.create_index("idx_refresh_tokens_user_email", "refresh_tokens", ["user_email"])
    op.create_index("idx_refresh_tokens_expires", "refresh_tokens", ["expires_at"])

    # 3. Revoked tokens
    op.create_table(
        "revoked_tokens",
        sa.Column("token_id", sa.String(255), nullable=False),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("token_id"),
    )
    op.create_index("idx_revoked_tokens_expires", "revoked_tokens", ["expires_at"])

    # 4. Password reset tokens
    op.create_table(
        "password_reset_tokens",
        sa.Column("token", sa.String(255), nullable=False),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("token"),
    )
    op.create_index("idx_password_reset_tokens_user_email", "password_reset_tokens", ["user_email"])
    op.create_index("idx_password_reset_tokens_expires", "password_reset_tokens", ["expires_at"])


def downgrade() -> None:
    # Drop in reverse order
    op.drop_table("password_reset_tokens")
    op.drop_table("revoked_tokens")
    op.drop_table("refresh_tokens")
    op.drop_table("users")
