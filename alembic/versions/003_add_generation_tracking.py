"""Track remote voice ids and last generation time

Revision ID: 003
Revises: 002
Create Date: 2025-11-03

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "003"
down_revision: str | None = "002"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    with op.batch_alter_table("voice_project") as batch_op:
        batch_op.add_column(sa.Column("remote_voice_id", sa.String(length=128), nullable=True))
        batch_op.add_column(sa.Column("last_generation_at", sa.DateTime(), nullable=True))
        batch_op.create_index(batch_op.f("ix_voice_project_remote_voice_id"), ["remote_voice_id"])


def downgrade() -> None:
    with op.batch_alter_table("voice_project") as batch_op:
        batch_op.drop_index(batch_op.f("ix_voice_project_remote_voice_id"))
        batch_op.drop_column("last_generation_at")
        batch_op.drop_column("remote_voice_id")
