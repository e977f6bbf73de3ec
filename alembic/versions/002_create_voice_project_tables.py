"""Create voice_project and voice_sample tables

Revision ID: 002
Revises: 001
Create Date: 2025-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

STATUSES = ("draft", "recording", "analyzing", "training", "ready", "generating", "completed", "failed")


def upgrade() -> None:
    op.create_table(
        "voice_project",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("script_text", sa.Text(), nullable=True),
        sa.Column("voice_stability", sa.Float(), nullable=True, server_default="0.5"),
        sa.Column("voice_similarity_boost", sa.Float(), nullable=True, server_default="0.75"),
        sa.Column("voice_style", sa.Float(), nullable=True, server_default="0.0"),
        sa.Column("voice_speaker_boost", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        sa.Column("total_clips", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("clips_uploaded", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("generated_audio_url", sa.String(length=1024), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("clips_uploaded <= total_clips", name="ck_voice_project_clips_uploaded"),
        sa.CheckConstraint(
            "voice_stability IS NULL OR (voice_stability >= 0 AND voice_stability <= 1)",
            name="ck_voice_project_stability_range",
        ),
        sa.CheckConstraint(
            "voice_similarity_boost IS NULL OR (voice_similarity_boost >= 0 AND voice_similarity_boost <= 1)",
            name="ck_voice_project_similarity_boost_range",
        ),
        sa.CheckConstraint(
            "voice_style IS NULL OR (voice_style >= 0 AND voice_style <= 1)",
            name="ck_voice_project_style_range",
        ),
        sa.CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in STATUSES) + ")",
            name="ck_voice_project_status",
        ),
    )
    op.create_index(op.f("ix_voice_project_user_id"), "voice_project", ["user_id"])

    op.create_table(
        "voice_sample",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "project_id",
            sa.String(length=36),
            sa.ForeignKey("voice_project.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("clip_number", sa.Integer(), nullable=False),
        sa.Column("sample_url", sa.String(length=1024), nullable=False),
        sa.Column("duration", sa.Float(), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "clip_number", name="uq_voice_sample_project_clip"),
    )
    op.create_index(op.f("ix_voice_sample_project_id"), "voice_sample", ["project_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_voice_sample_project_id"), table_name="voice_sample")
    op.drop_table("voice_sample")
    op.drop_index(op.f("ix_voice_project_user_id"), table_name="voice_project")
    op.drop_table("voice_project")
