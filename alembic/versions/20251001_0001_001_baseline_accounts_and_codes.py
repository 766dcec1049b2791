"""Baseline schema: accounts and email verification codes.

Revision ID: 001_baseline
Revises:
Create Date: 2025-10-01
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_baseline"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("is_admin", sa.Boolean(), default=False),
        sa.Column("exchange_api_key", sa.Text()),
        sa.Column("exchange_api_secret", sa.Text()),
        sa.Column("initial_funds", sa.Numeric(12, 2)),
        sa.Column("investment_active", sa.Boolean(), default=True),
        sa.Column("stripe_customer_id", sa.String(255)),
        sa.Column("stripe_subscription_id", sa.String(255)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index(
        "idx_users_subscription",
        "users",
        ["stripe_subscription_id"],
        postgresql_where=sa.text("stripe_subscription_id IS NOT NULL"),
    )

    op.create_table(
        "otp_codes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("code", sa.String(6), nullable=False),
        sa.Column("purpose", sa.String(20), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("consumed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_otp_codes_lookup", "otp_codes", ["email", "purpose", "code"])
    op.create_index("idx_otp_codes_expires", "otp_codes", ["expires_at"])


def downgrade() -> None:
    op.drop_index("idx_otp_codes_expires", table_name="otp_codes")
    op.drop_index("idx_otp_codes_lookup", table_name="otp_codes")
    op.drop_table("otp_codes")
    op.drop_index("idx_users_subscription", table_name="users")
    op.drop_table("users")
