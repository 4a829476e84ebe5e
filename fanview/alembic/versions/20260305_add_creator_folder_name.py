"""Add creators.folder_name for creator-scoped upload storage.

Revision ID: b2c3d4e5f6a7
Revises: a1b2c3d4e5f6
Create Date: 2026-03-05
"""

from alembic import op
import sqlalchemy as sa

revision = "b2c3d4e5f6a7"
down_revision = "a1b2c3d4e5f6"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("creators") as batch_op:
        batch_op.add_column(sa.Column("folder_name", sa.String(64), nullable=True))
        batch_op.create_unique_constraint("uq_creators_folder_name", ["folder_name"])


def downgrade() -> None:
    with op.batch_alter_table("creators") as batch_op:
        batch_op.drop_constraint("uq_creators_folder_name", type_="unique")
        batch_op.drop_column("folder_name")
