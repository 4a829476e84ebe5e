"""Add email verification and password reset columns to users.

Accounts that existed before verification was introduced are marked as
verified.

Revision ID: d4e5f6a7b8c9
Revises: c3d4e5f6a7b8
Create Date: 2026-03-10
"""

from alembic import op
import sqlalchemy as sa

revision = "d4e5f6a7b8c9"
down_revision = "c3d4e5f6a7b8"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("users") as batch_op:
        batch_op.add_column(sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.true()))
        batch_op.add_column(sa.Column("verification_token", sa.String(64), nullable=True))
        batch_op.add_column(sa.Column("verification_expires_at", sa.DateTime(timezone=True), nullable=True))
        batch_op.add_column(sa.Column("reset_token", sa.String(64), nullable=True))
        batch_op.add_column(sa.Column("reset_expires_at", sa.DateTime(timezone=True), nullable=True))
        batch_op.create_index("ix_users_verification_token", ["verification_token"])
        batch_op.create_index("ix_users_reset_token", ["reset_token"])


def downgrade() -> None:
    with op.batch_alter_table("users") as batch_op:
        batch_op.drop_index("ix_users_reset_token")
        batch_op.drop_index("ix_users_verification_token")
        batch_op.drop_column("reset_expires_at")
        batch_op.drop_column("reset_token")
        batch_op.drop_column("verification_expires_at")
        batch_op.drop_column("verification_token")
        batch_op.drop_column("email_verified")
