"""Add creators.username for profile URLs.

Existing rows are filled by ``fanview backfill-usernames``.

Revision ID: c3d4e5f6a7b8
Revises: b2c3d4e5f6a7
Create Date: 2026-03-06
"""

from alembic import op
import sqlalchemy as sa

revision = "c3d4e5f6a7b8"
down_revision = "b2c3d4e5f6a7"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("creators") as batch_op:
        batch_op.add_column(sa.Column("username", sa.String(100), nullable=True))
        batch_op.create_unique_constraint("uq_creators_username", ["username"])


def downgrade() -> None:
    with op.batch_alter_table("creators") as batch_op:
        batch_op.drop_constraint("uq_creators_username", type_="unique")
        batch_op.drop_column("username")
